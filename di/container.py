"""Centralized dependency injection container."""
from __future__ import annotations

from dependency_injector import containers, providers

from core.settings import SETTINGS, use_database_ssl
from infra.llm import ChatModelProvider
from infra.resources import DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies."""

    config = providers.Configuration()

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
        ssl=use_database_ssl(SETTINGS.APP, SETTINGS.DATABASE),
    )

    # Completion provider
    llm_provider = providers.Singleton(
        ChatModelProvider,
        api_key=SETTINGS.LLM.OPENAI_API_KEY.get_secret_value(),
        base_url=SETTINGS.LLM.OPENAI_BASE_URL,
        temperature=SETTINGS.LLM.TEMPERATURE,
        max_tokens=SETTINGS.LLM.MAX_TOKENS,
        timeout=SETTINGS.LLM.REQUEST_TIMEOUT,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure.

    The generator and manager are singletons: the generator's selected model
    and the manager's session locks are process-wide state.
    """

    infrastructure = providers.DependenciesContainer()

    history_store = providers.Singleton(
        "api.features.chat.repository.SqlHistoryStore",
        database=infrastructure.database,
    )

    reply_generator = providers.Singleton(
        "api.features.chat.generator.ReplyGenerator",
        provider=infrastructure.llm_provider,
        primary_model=SETTINGS.LLM.PRIMARY_MODEL,
        fallback_model=SETTINGS.LLM.FALLBACK_MODEL,
        history_window=SETTINGS.CHAT.HISTORY_WINDOW,
        max_message_length=SETTINGS.CHAT.MAX_MESSAGE_LENGTH,
    )

    conversation_manager = providers.Singleton(
        "api.features.chat.service.ConversationManager",
        store=history_store,
        generator=reply_generator,
        max_message_length=SETTINGS.CHAT.MAX_MESSAGE_LENGTH,
        serialize_session_writes=SETTINGS.CHAT.SERIALIZE_SESSION_WRITES,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        conversation_manager=services.conversation_manager,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.main",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
