"""
Admin Application DTOs
======================
"""

from typing import List

from pydantic import BaseModel

from src.admin.application.services import PipelineMetrics
from src.chat.application import ChatSessionResponse, ChatMessageResponse


class SessionListResponse(BaseModel):
    data: List[ChatSessionResponse]
    count: int
    limit: int
    offset: int


class SessionMessagesResponse(BaseModel):
    session_id: str
    messages: List[ChatMessageResponse]


class MetricsResponse(BaseModel):
    """Dashboard counters."""
    total_sessions: int
    open_sessions: int
    closed_sessions: int
    total_tasks: int
    avg_response_time_ms: float

    @classmethod
    def from_domain(cls, metrics: PipelineMetrics) -> "MetricsResponse":
        return cls(
            total_sessions=metrics.total_sessions,
            open_sessions=metrics.open_sessions,
            closed_sessions=metrics.closed_sessions,
            total_tasks=metrics.total_tasks,
            avg_response_time_ms=metrics.avg_response_time_ms,
        )
