"""
Chat Infrastructure Repositories
================================

SQLAlchemy implementations of the chat repositories.

Every write commits immediately: each pipeline step is durable on its own.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.chat.application import IChatSessionRepository, IChatMessageRepository
from src.chat.domain import ChatSession, ChatMessage
from src.chat.infrastructure.models import ChatSessionModel, ChatMessageModel
from src.config import SessionStatus, MessageRole
from src.core import RepositoryException


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _session_to_domain(model: ChatSessionModel) -> ChatSession:
    return ChatSession(
        id=str(model.id),
        source=model.source,
        status=model.status,
        browser_session=model.browser_session or {},
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _message_to_domain(model: ChatMessageModel) -> ChatMessage:
    return ChatMessage(
        id=str(model.id),
        session_id=str(model.session_id),
        role=model.role,
        message=model.message,
        metadata=model.message_metadata or {},
        created_at=model.created_at,
    )


async def _commit(session: AsyncSession, what: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise RepositoryException(f"Failed to store {what}: {e}") from e


class SQLAlchemyChatSessionRepository(IChatSessionRepository):
    """SQLAlchemy implementation for chat sessions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, session: ChatSession) -> ChatSession:
        session_uuid = _parse_uuid(session.id)
        if session_uuid is None:
            raise RepositoryException(f"Invalid session ID: {session.id}")

        model = ChatSessionModel(
            id=session_uuid,
            source=session.source,
            status=session.status,
            browser_session=session.browser_session or {},
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
        self._session.add(model)
        await _commit(self._session, "chat session")
        return _session_to_domain(model)

    async def get_by_id(self, session_id: str) -> Optional[ChatSession]:
        session_uuid = _parse_uuid(session_id)
        if session_uuid is None:
            return None

        stmt = (
            select(ChatSessionModel)
            .where(ChatSessionModel.id == session_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _session_to_domain(model) if model else None

    async def touch(self, session_id: str, at: datetime) -> None:
        # Column-targeted so a concurrent close is never overwritten
        stmt = (
            update(ChatSessionModel)
            .where(ChatSessionModel.id == UUID(session_id))
            .values(updated_at=at)
            .execution_options(synchronize_session=False)
        )
        try:
            await self._session.execute(stmt)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to store session activity: {e}") from e
        await _commit(self._session, "session activity")

    async def close(self, session_id: str, at: datetime) -> bool:
        stmt = (
            update(ChatSessionModel)
            .where(
                and_(
                    ChatSessionModel.id == UUID(session_id),
                    ChatSessionModel.status == SessionStatus.OPEN,
                )
            )
            .values(status=SessionStatus.CLOSED, updated_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await _commit(self._session, "session close")
        return result.rowcount == 1

    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[ChatSession]:
        stmt = select(ChatSessionModel)

        conditions = []
        if filters.get("status"):
            conditions.append(ChatSessionModel.status == filters["status"])
        if filters.get("source"):
            conditions.append(ChatSessionModel.source == filters["source"])
        if filters.get("date_from"):
            conditions.append(ChatSessionModel.created_at >= filters["date_from"])
        if filters.get("date_to"):
            conditions.append(ChatSessionModel.created_at <= filters["date_to"])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        order_column = (
            ChatSessionModel.updated_at
            if filters.get("order_by") == "updated_at"
            else ChatSessionModel.created_at
        )
        stmt = (
            stmt.order_by(order_column.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )

        result = await self._session.execute(stmt)
        return [_session_to_domain(m) for m in result.scalars().all()]

    async def count(self, status: Optional[str] = None) -> int:
        stmt = select(func.count(ChatSessionModel.id))
        if status:
            stmt = stmt.where(ChatSessionModel.status == status)
        result = await self._session.execute(stmt)
        return result.scalar() or 0


class SQLAlchemyChatMessageRepository(IChatMessageRepository):
    """SQLAlchemy implementation for the message log."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, message: ChatMessage) -> ChatMessage:
        message_uuid = _parse_uuid(message.id)
        session_uuid = _parse_uuid(message.session_id)
        if message_uuid is None or session_uuid is None:
            raise RepositoryException(
                "Invalid message or session ID",
                {"message_id": message.id, "session_id": message.session_id}
            )

        model = ChatMessageModel(
            id=message_uuid,
            session_id=session_uuid,
            role=message.role,
            message=message.message,
            message_metadata=message.metadata or {},
            created_at=message.created_at,
        )
        self._session.add(model)
        await _commit(self._session, f"{message.role} message")
        return _message_to_domain(model)

    async def list_by_session(self, session_id: str) -> List[ChatMessage]:
        session_uuid = _parse_uuid(session_id)
        if session_uuid is None:
            return []

        stmt = (
            select(ChatMessageModel)
            .where(ChatMessageModel.session_id == session_uuid)
            .order_by(ChatMessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [_message_to_domain(m) for m in result.scalars().all()]

    async def average_agent_latency_ms(self) -> float:
        latency = ChatMessageModel.message_metadata["latency_ms"].as_float()
        stmt = select(func.avg(latency)).where(ChatMessageModel.role == MessageRole.AGENT)
        result = await self._session.execute(stmt)
        value = result.scalar()
        return round(float(value), 2) if value is not None else 0.0
