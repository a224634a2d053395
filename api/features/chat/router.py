"""Router for the Chat feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from api.features.chat.controller import ChatController
from api.features.chat.dtos import (
    HistoryResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post("/message", response_model=SendMessageResponse)
@inject
async def send_message(
    request: SendMessageRequest,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """Send a customer message and get the agent's reply."""
    return await controller.send_message(request)


@router.get("/history/{session_id}", response_model=HistoryResponse)
@inject
async def get_history(
    session_id: str,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
):
    """List a conversation's messages, oldest first."""
    return await controller.get_history(session_id)
