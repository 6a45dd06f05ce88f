"""Pytest configuration and shared fixtures."""

from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.backlog.infrastructure import SQLAlchemyBacklogTaskRepository
from src.chat.application import ChatService, TriagePipeline
from src.chat.domain import ChatSession
from src.chat.infrastructure import (
    LLMAgentInvoker,
    SQLAlchemyChatSessionRepository,
    SQLAlchemyChatMessageRepository,
)
from src.infrastructure.database import Base

from fakes import ScriptedLLMClient, StubRetriever

# Register tables on Base.metadata
import src.chat.infrastructure.models  # noqa: F401
import src.backlog.infrastructure.models  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Database Fixtures ---


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def session_repo(db_session) -> SQLAlchemyChatSessionRepository:
    return SQLAlchemyChatSessionRepository(db_session)


@pytest.fixture
def message_repo(db_session) -> SQLAlchemyChatMessageRepository:
    return SQLAlchemyChatMessageRepository(db_session)


@pytest.fixture
def backlog_repo(db_session) -> SQLAlchemyBacklogTaskRepository:
    return SQLAlchemyBacklogTaskRepository(db_session)


# --- Service Fixtures ---


@pytest.fixture
def llm_client() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def retriever() -> StubRetriever:
    return StubRetriever()


@pytest.fixture
def chat_service(session_repo, message_repo) -> ChatService:
    return ChatService(session_repo, message_repo)


@pytest.fixture
def pipeline(session_repo, message_repo, backlog_repo, retriever, llm_client) -> TriagePipeline:
    return TriagePipeline(
        session_repository=session_repo,
        message_repository=message_repo,
        backlog_repository=backlog_repo,
        document_retriever=retriever,
        agent_invoker=LLMAgentInvoker(llm_client),
    )


@pytest.fixture
async def open_session(chat_service) -> ChatSession:
    return await chat_service.create_session(
        "widget", {"user_agent": "Mozilla/5.0", "timezone": "Europe/Moscow"}
    )
