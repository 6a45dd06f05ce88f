"""
Chat Application Services
=========================

Repository/collaborator interfaces for the chat module and the session
lifecycle service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from src.chat.domain import (
    ChatSession, ChatMessage, RetrievalResult, AgentContext, AgentResponse,
)
from src.chat.domain.entities import utcnow
from src.config import SessionStatus, VALID_SOURCES
from src.core import SessionNotFoundException, ValidationException
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IChatSessionRepository(ABC):
    """Interface for chat session data access."""

    @abstractmethod
    async def create(self, session: ChatSession) -> ChatSession:
        """Persist a new session."""

    @abstractmethod
    async def get_by_id(self, session_id: str) -> Optional[ChatSession]:
        """Get session by id (None for unknown or malformed ids)."""

    @abstractmethod
    async def touch(self, session_id: str, at: datetime) -> None:
        """Refresh updated_at only; never writes status."""

    @abstractmethod
    async def close(self, session_id: str, at: datetime) -> bool:
        """Close an open session; False if it was not open."""

    @abstractmethod
    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[ChatSession]:
        """
        List sessions.

        Supported filters: status, source, date_from, date_to, order_by
        ("created_at" or "updated_at", newest first).
        """

    @abstractmethod
    async def count(self, status: Optional[str] = None) -> int:
        """Count sessions, optionally by status."""


class IChatMessageRepository(ABC):
    """Interface for the append-only message log."""

    @abstractmethod
    async def add(self, message: ChatMessage) -> ChatMessage:
        """Append a message."""

    @abstractmethod
    async def list_by_session(self, session_id: str) -> List[ChatMessage]:
        """Messages of a session in created_at order."""

    @abstractmethod
    async def average_agent_latency_ms(self) -> float:
        """Mean metadata.latency_ms over agent messages (0 if none)."""


class IDocumentRetriever(ABC):
    """Document lookup for an inbound message. Must never raise."""

    @abstractmethod
    async def retrieve(self, query: str) -> RetrievalResult:
        """Return live results or the degraded fallback."""


class IAgentInvoker(ABC):
    """Classification agent boundary."""

    @abstractmethod
    async def invoke(self, system_prompt: str, context: AgentContext) -> AgentResponse:
        """Send instructions plus context; return raw text and token usage."""


# ========== Application Services ==========

@dataclass
class SessionTranscript:
    """A session with its messages in display order."""
    session: ChatSession
    messages: List[ChatMessage]


class ChatService:
    """
    Session lifecycle: create, read, close.

    Message handling lives in ``TriagePipeline``.
    """

    def __init__(
        self,
        session_repository: IChatSessionRepository,
        message_repository: IChatMessageRepository,
    ):
        self._sessions = session_repository
        self._messages = message_repository

    async def create_session(
        self,
        source: str,
        browser_session: Optional[dict] = None
    ) -> ChatSession:
        if source not in VALID_SOURCES:
            raise ValidationException(
                f"source must be one of {VALID_SOURCES}",
                {"source": source}
            )

        session = await self._sessions.create(ChatSession.open(source, browser_session))
        logger.info(
            "Chat session opened",
            extra={"session_id": session.id, "source": session.source}
        )
        return session

    async def get_session(self, session_id: str) -> SessionTranscript:
        session = await self._require(session_id)
        messages = await self._messages.list_by_session(session_id)
        return SessionTranscript(session=session, messages=messages)

    async def close_session(self, session_id: str) -> ChatSession:
        """
        Close a session. Closing a closed session changes nothing.

        Raises:
            SessionNotFoundException: unknown session id
        """
        session = await self._require(session_id)
        if session.is_closed:
            return session

        closed_at = utcnow()
        if await self._sessions.close(session_id, closed_at):
            session.close(closed_at)
            logger.info("Chat session closed", extra={"session_id": session_id})
            return session

        # Closed concurrently between the read and the update
        return await self._require(session_id)

    async def list_active_sessions(self, limit: int = 100) -> List[ChatSession]:
        """Open sessions, most recently active first."""
        return await self._sessions.list(
            {"status": SessionStatus.OPEN, "order_by": "updated_at"},
            limit=limit,
        )

    async def _require(self, session_id: str) -> ChatSession:
        session = await self._sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundException(session_id)
        return session
