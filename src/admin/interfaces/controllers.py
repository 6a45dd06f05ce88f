"""
Admin Controllers (API Routes)
==============================

FastAPI routes for the operator dashboard.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.application import (
    AdminService,
    SessionListResponse,
    SessionMessagesResponse,
    MetricsResponse,
)
from src.backlog.infrastructure import SQLAlchemyBacklogTaskRepository
from src.chat.application import ChatSessionResponse, ChatMessageResponse
from src.chat.infrastructure import (
    SQLAlchemyChatSessionRepository,
    SQLAlchemyChatMessageRepository,
)
from src.infrastructure.database import get_session

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


METRICS_RESPONSE_EXAMPLE = {
    "total_sessions": 42,
    "open_sessions": 7,
    "closed_sessions": 35,
    "total_tasks": 30,
    "avg_response_time_ms": 1840.5
}


def get_admin_service(db: AsyncSession = Depends(get_session)) -> AdminService:
    return AdminService(
        SQLAlchemyChatSessionRepository(db),
        SQLAlchemyChatMessageRepository(db),
        SQLAlchemyBacklogTaskRepository(db),
    )


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    summary="List chat sessions",
    description="Sessions newest first. Date filters apply to created_at."
)
async def list_sessions(
    status: Optional[Literal["open", "closed"]] = Query(default=None),
    source: Optional[Literal["widget", "agent", "admin"]] = Query(default=None),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    service: AdminService = Depends(get_admin_service)
):
    filters = {
        "status": status,
        "source": source,
        "date_from": date_from,
        "date_to": date_to,
    }
    sessions = await service.list_sessions(
        {k: v for k, v in filters.items() if v is not None},
        limit=limit,
        offset=offset,
    )
    return SessionListResponse(
        data=[ChatSessionResponse.from_domain(s) for s in sessions],
        count=len(sessions),
        limit=limit,
        offset=offset,
    )


@router.get(
    "/sessions/{session_id}/messages",
    response_model=SessionMessagesResponse,
    summary="Message log of a session",
    responses={404: {"description": "Session not found"}}
)
async def list_session_messages(
    session_id: str,
    service: AdminService = Depends(get_admin_service)
):
    messages = await service.list_messages(session_id)
    return SessionMessagesResponse(
        session_id=session_id,
        messages=[ChatMessageResponse.from_domain(m) for m in messages],
    )


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Pipeline metrics",
    responses={
        200: {
            "description": "Session, task and agent latency counters",
            "content": {
                "application/json": {
                    "example": METRICS_RESPONSE_EXAMPLE
                }
            }
        }
    }
)
async def get_metrics(service: AdminService = Depends(get_admin_service)):
    metrics = await service.get_metrics()
    return MetricsResponse.from_domain(metrics)


# Export router
admin_router = router
