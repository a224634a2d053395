import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from api.features.chat.generator import ReplyGenerator
from api.features.chat.service import ConversationManager
from tests.mocks import MockCompletionProvider, MockHistoryStore

PRIMARY_MODEL = "primary-model"
FALLBACK_MODEL = "fallback-model"


@pytest.fixture
def store() -> MockHistoryStore:
    return MockHistoryStore()


@pytest.fixture
def provider() -> MockCompletionProvider:
    return MockCompletionProvider()


@pytest.fixture
def generator(provider: MockCompletionProvider) -> ReplyGenerator:
    return ReplyGenerator(
        provider, primary_model=PRIMARY_MODEL, fallback_model=FALLBACK_MODEL
    )


@pytest.fixture
def manager(store: MockHistoryStore, generator: ReplyGenerator) -> ConversationManager:
    return ConversationManager(store, generator)


@pytest.fixture
def client(manager: ConversationManager):
    from api.main import app

    # TestClient is not entered as a context manager, so lifespan (DB, API key
    # checks) never runs.
    with app.container.services.conversation_manager.override(
        providers.Object(manager)
    ):
        yield TestClient(app)
