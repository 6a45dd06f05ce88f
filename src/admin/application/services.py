"""
Admin Application Services
==========================

Read-only queries for the operator dashboard.
"""

from dataclasses import dataclass
from typing import List, Optional

from src.backlog.application import IBacklogTaskRepository
from src.chat.application import IChatSessionRepository, IChatMessageRepository
from src.chat.domain import ChatSession, ChatMessage
from src.config import SessionStatus
from src.core import SessionNotFoundException


@dataclass(frozen=True)
class PipelineMetrics:
    """Aggregate counters shown on the dashboard."""
    total_sessions: int
    open_sessions: int
    closed_sessions: int
    total_tasks: int
    avg_response_time_ms: float


class AdminService:
    """Session browsing and aggregate metrics."""

    def __init__(
        self,
        session_repository: IChatSessionRepository,
        message_repository: IChatMessageRepository,
        backlog_repository: IBacklogTaskRepository,
    ):
        self._sessions = session_repository
        self._messages = message_repository
        self._backlog = backlog_repository

    async def list_sessions(
        self,
        filters: Optional[dict] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[ChatSession]:
        """Sessions newest first, filtered by status/source/created_at range."""
        return await self._sessions.list(filters or {}, limit=limit, offset=offset)

    async def list_messages(self, session_id: str) -> List[ChatMessage]:
        if await self._sessions.get_by_id(session_id) is None:
            raise SessionNotFoundException(session_id)
        return await self._messages.list_by_session(session_id)

    async def get_metrics(self) -> PipelineMetrics:
        total = await self._sessions.count()
        open_count = await self._sessions.count(status=SessionStatus.OPEN)
        return PipelineMetrics(
            total_sessions=total,
            open_sessions=open_count,
            closed_sessions=total - open_count,
            total_tasks=await self._backlog.count(),
            avg_response_time_ms=await self._messages.average_agent_latency_ms(),
        )
