"""
Backlog Application DTOs
========================

Pydantic models for the backlog API.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from src.backlog.domain import BacklogTask

SeverityStr = Literal["low", "medium", "high", "critical"]


# ========== Request DTOs ==========

class BacklogTaskQueryDTO(BaseModel):
    """Query parameters for task listing."""
    severity: Optional[SeverityStr] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)

    def to_filters(self) -> dict:
        """Repository filter dict with only the parameters that were set."""
        return self.model_dump(
            exclude={"limit", "offset"},
            exclude_none=True,
        )


# ========== Response DTOs ==========

class BacklogTaskMetricsInfo(BaseModel):
    total_tokens: int
    total_latency_ms: int
    api2_calls: int
    agent_confidence: float
    created_from_session_id: str


class BacklogTaskResponse(BaseModel):
    """A persisted backlog task."""
    id: str
    ticket_text: str
    ai_summary: str
    severity: str
    priority: int
    metrics: BacklogTaskMetricsInfo
    created_at: Optional[datetime]

    @classmethod
    def from_domain(cls, task: BacklogTask) -> "BacklogTaskResponse":
        return cls(
            id=task.id,
            ticket_text=task.ticket_text,
            ai_summary=task.ai_summary,
            severity=task.severity,
            priority=task.priority,
            metrics=BacklogTaskMetricsInfo(**task.metrics.to_dict()),
            created_at=task.created_at,
        )


class PageMeta(BaseModel):
    count: int
    limit: int
    offset: int


class BacklogTaskListResponse(BaseModel):
    data: List[BacklogTaskResponse]
    meta: PageMeta


class SeverityStatsInfo(BaseModel):
    severity: str
    count: int
    avg_priority: float


class BacklogStatsResponse(BaseModel):
    total: int
    by_severity: List[SeverityStatsInfo]
