"""
Backlog Domain Entities
=======================

Backlog tasks derived from successful agent analyses.

Tasks are append-only: created once from an analysis, never mutated.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from src.chat.domain.entities import AnalysisResult

API2_CALLS_PER_TASK = 1


@dataclass(frozen=True)
class BacklogTaskMetrics:
    """Flattened analysis metrics stored with a task."""
    total_tokens: int
    total_latency_ms: int
    api2_calls: int
    agent_confidence: float
    created_from_session_id: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BacklogTask:
    """Durable ticket created from an analysis result."""
    id: Optional[str]  # None until persisted
    ticket_text: str
    ai_summary: str
    severity: str
    priority: int
    metrics: BacklogTaskMetrics
    created_at: Optional[datetime] = None


class BacklogTaskFactory:
    """Maps a validated AnalysisResult into an unsaved BacklogTask."""

    @staticmethod
    def from_analysis(
        result: AnalysisResult,
        original_message: str,
        session_id: str,
    ) -> BacklogTask:
        return BacklogTask(
            id=None,
            ticket_text=original_message,
            ai_summary=result.problem_summary,
            severity=result.severity,
            priority=result.priority_guess,
            metrics=BacklogTaskMetrics(
                total_tokens=result.metrics.tokens_used,
                total_latency_ms=result.metrics.latency_ms,
                api2_calls=API2_CALLS_PER_TASK,
                agent_confidence=result.metrics.confidence,
                created_from_session_id=session_id,
            ),
        )
