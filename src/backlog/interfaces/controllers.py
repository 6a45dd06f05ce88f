"""
Backlog Controllers (API Routes)
================================

Read-only FastAPI routes over the tasks created by the triage pipeline.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.backlog.application import (
    SeverityStr,
    BacklogService,
    BacklogTaskQueryDTO,
    BacklogTaskResponse,
    BacklogTaskListResponse,
    BacklogStatsResponse,
    SeverityStatsInfo,
    PageMeta,
)
from src.backlog.infrastructure import SQLAlchemyBacklogTaskRepository
from src.infrastructure.database import get_session

router = APIRouter(prefix="/api/v1/backlog", tags=["Backlog"])


STATS_RESPONSE_EXAMPLE = {
    "total": 12,
    "by_severity": [
        {"severity": "critical", "count": 1, "avg_priority": 1.0},
        {"severity": "high", "count": 4, "avg_priority": 1.75},
        {"severity": "medium", "count": 5, "avg_priority": 3.2},
        {"severity": "low", "count": 2, "avg_priority": 4.5}
    ]
}


def get_backlog_service(db: AsyncSession = Depends(get_session)) -> BacklogService:
    return BacklogService(SQLAlchemyBacklogTaskRepository(db))


@router.get(
    "/tasks",
    response_model=BacklogTaskListResponse,
    summary="List backlog tasks",
    description="""
    List tasks newest first.

    **Filters**: `severity`, `priority` (1-5), `date_from`, `date_to`
    (ISO 8601, applied to created_at). Paginate with `limit` / `offset`.
    """
)
async def list_tasks(
    severity: Optional[SeverityStr] = Query(default=None),
    priority: Optional[int] = Query(default=None, ge=1, le=5),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    service: BacklogService = Depends(get_backlog_service)
):
    query = BacklogTaskQueryDTO(
        severity=severity,
        priority=priority,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    tasks = await service.list_tasks(query.to_filters(), limit=query.limit, offset=query.offset)
    return BacklogTaskListResponse(
        data=[BacklogTaskResponse.from_domain(t) for t in tasks],
        meta=PageMeta(count=len(tasks), limit=query.limit, offset=query.offset),
    )


@router.get(
    "/tasks/{task_id}",
    response_model=BacklogTaskResponse,
    summary="Get a backlog task",
    responses={404: {"description": "Task not found"}}
)
async def get_task(
    task_id: str,
    service: BacklogService = Depends(get_backlog_service)
):
    task = await service.get_task(task_id)
    return BacklogTaskResponse.from_domain(task)


@router.get(
    "/stats",
    response_model=BacklogStatsResponse,
    summary="Backlog statistics",
    responses={
        200: {
            "description": "Total and per-severity task statistics",
            "content": {
                "application/json": {
                    "example": STATS_RESPONSE_EXAMPLE
                }
            }
        }
    }
)
async def get_stats(service: BacklogService = Depends(get_backlog_service)):
    stats = await service.get_stats()
    return BacklogStatsResponse(
        total=stats["total"],
        by_severity=[
            SeverityStatsInfo(
                severity=s.severity,
                count=s.count,
                avg_priority=s.avg_priority,
            )
            for s in stats["by_severity"]
        ],
    )


# Export router
backlog_router = router
