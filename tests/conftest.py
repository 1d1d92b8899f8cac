from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from groupmatch.database import init_db
from groupmatch.services import llm_service
from groupmatch.services.dedup_ledger import get_message_ledger
from groupmatch.services.llm import LLMError, LLMProvider, LLMResponse


class FakeLLMProvider(LLMProvider):
    """Records prompts and answers through a swappable responder."""

    def __init__(self):
        self.calls = []
        self.responder = self._unconfigured

    @staticmethod
    def _unconfigured(messages):
        raise LLMError("LLM not configured in this test")

    async def generate(self, messages, model=None, temperature=0.7, max_tokens=1000, timeout_seconds=None):
        self.calls.append(messages)
        content = self.responder(messages)
        return LLMResponse(content=content, model="fake-model")


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fake_llm():
    provider = FakeLLMProvider()
    llm_service.set_llm_provider(provider)
    yield provider
    llm_service.set_llm_provider(None)


@pytest.fixture(autouse=True)
def _clear_ledger():
    get_message_ledger().clear()
    yield
    get_message_ledger().clear()
