"""
Backlog Application Services
============================

Persistence-agnostic backlog operations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from src.backlog.domain import BacklogTask
from src.core import ResourceNotFoundException
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SeverityStats:
    """Task count and mean priority for one severity."""
    severity: str
    count: int
    avg_priority: float


# ========== Repository Interfaces ==========

class IBacklogTaskRepository(ABC):
    """Interface for backlog task data access."""

    @abstractmethod
    async def create(self, task: BacklogTask) -> BacklogTask:
        """Persist a new task; returns it with id and created_at set."""

    @abstractmethod
    async def get_by_id(self, task_id: str) -> Optional[BacklogTask]:
        """Get task by id."""

    @abstractmethod
    async def list(
        self,
        filters: dict,
        limit: int = 50,
        offset: int = 0
    ) -> List[BacklogTask]:
        """
        List tasks newest first.

        Supported filters: severity, priority, date_from, date_to.
        """

    @abstractmethod
    async def count(self) -> int:
        """Total number of tasks."""

    @abstractmethod
    async def severity_stats(self) -> List[SeverityStats]:
        """Per-severity counts and average priority."""


# ========== Application Services ==========

class BacklogService:
    """Reads and writes backlog tasks."""

    def __init__(self, repository: IBacklogTaskRepository):
        self._repository = repository

    async def create_task(self, task: BacklogTask) -> BacklogTask:
        saved = await self._repository.create(task)
        logger.info(
            "Backlog task created",
            extra={
                "task_id": saved.id,
                "severity": saved.severity,
                "priority": saved.priority,
                "session_id": saved.metrics.created_from_session_id,
            }
        )
        return saved

    async def get_task(self, task_id: str) -> BacklogTask:
        task = await self._repository.get_by_id(task_id)
        if task is None:
            raise ResourceNotFoundException("BacklogTask", task_id)
        return task

    async def list_tasks(
        self,
        filters: Optional[dict] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[BacklogTask]:
        return await self._repository.list(filters or {}, limit=limit, offset=offset)

    async def get_stats(self) -> dict:
        """Total task count plus per-severity breakdown."""
        total = await self._repository.count()
        by_severity = await self._repository.severity_stats()
        return {
            "total": total,
            "by_severity": by_severity,
        }
