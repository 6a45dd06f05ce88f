"""
Backlog Infrastructure Repositories
===================================

SQLAlchemy implementation of the backlog task repository.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.backlog.application import IBacklogTaskRepository, SeverityStats
from src.backlog.domain import BacklogTask, BacklogTaskMetrics
from src.backlog.infrastructure.models import BacklogTaskModel
from src.core import RepositoryException


def _to_domain(model: BacklogTaskModel) -> BacklogTask:
    return BacklogTask(
        id=str(model.id),
        ticket_text=model.ticket_text,
        ai_summary=model.ai_summary,
        severity=model.severity,
        priority=model.priority,
        metrics=BacklogTaskMetrics(**model.metrics),
        created_at=model.created_at,
    )


class SQLAlchemyBacklogTaskRepository(IBacklogTaskRepository):
    """SQLAlchemy implementation for backlog tasks."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, task: BacklogTask) -> BacklogTask:
        """Insert and commit a new task."""
        model = BacklogTaskModel(
            id=uuid4(),
            ticket_text=task.ticket_text,
            ai_summary=task.ai_summary,
            severity=task.severity,
            priority=task.priority,
            metrics=task.metrics.to_dict(),
            created_at=datetime.now(timezone.utc),
        )

        self._session.add(model)
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(f"Failed to store backlog task: {e}") from e

        return _to_domain(model)

    async def get_by_id(self, task_id: str) -> Optional[BacklogTask]:
        try:
            task_uuid = UUID(task_id)
        except ValueError:
            return None

        stmt = select(BacklogTaskModel).where(BacklogTaskModel.id == task_uuid)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_domain(model) if model else None

    async def list(
        self,
        filters: dict,
        limit: int = 50,
        offset: int = 0
    ) -> List[BacklogTask]:
        stmt = select(BacklogTaskModel)

        conditions = []
        if filters.get("severity"):
            conditions.append(BacklogTaskModel.severity == filters["severity"])
        if filters.get("priority"):
            conditions.append(BacklogTaskModel.priority == filters["priority"])
        if filters.get("date_from"):
            conditions.append(BacklogTaskModel.created_at >= filters["date_from"])
        if filters.get("date_to"):
            conditions.append(BacklogTaskModel.created_at <= filters["date_to"])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(BacklogTaskModel.created_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return [_to_domain(m) for m in result.scalars().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(BacklogTaskModel.id)))
        return result.scalar() or 0

    async def severity_stats(self) -> List[SeverityStats]:
        stmt = (
            select(
                BacklogTaskModel.severity,
                func.count(BacklogTaskModel.id),
                func.avg(BacklogTaskModel.priority),
            )
            .group_by(BacklogTaskModel.severity)
            .order_by(BacklogTaskModel.severity)
        )
        result = await self._session.execute(stmt)
        return [
            SeverityStats(
                severity=severity,
                count=count,
                avg_priority=round(float(avg or 0), 2),
            )
            for severity, count, avg in result.all()
        ]
