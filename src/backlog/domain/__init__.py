"""
Backlog Domain Layer
====================

Contains:
- Entities: BacklogTask, BacklogTaskMetrics
- Factory: BacklogTaskFactory (analysis result -> unsaved task)
"""

from src.backlog.domain.entities import (
    BacklogTask,
    BacklogTaskMetrics,
    BacklogTaskFactory,
    API2_CALLS_PER_TASK,
)

__all__ = [
    "BacklogTask",
    "BacklogTaskMetrics",
    "BacklogTaskFactory",
    "API2_CALLS_PER_TASK",
]
