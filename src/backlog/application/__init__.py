"""
Backlog Application Layer
=========================

Contains:
- Services: BacklogService
- DTOs: API request/response models
- Repository interface: IBacklogTaskRepository
"""

from src.backlog.application.dto import (
    SeverityStr,
    BacklogTaskQueryDTO,
    BacklogTaskResponse,
    BacklogTaskMetricsInfo,
    BacklogTaskListResponse,
    BacklogStatsResponse,
    SeverityStatsInfo,
    PageMeta,
)
from src.backlog.application.services import (
    BacklogService,
    IBacklogTaskRepository,
    SeverityStats,
)

__all__ = [
    # DTOs
    "SeverityStr",
    "BacklogTaskQueryDTO",
    "BacklogTaskResponse",
    "BacklogTaskMetricsInfo",
    "BacklogTaskListResponse",
    "BacklogStatsResponse",
    "SeverityStatsInfo",
    "PageMeta",
    # Services
    "BacklogService",
    "SeverityStats",
    # Repository Interfaces
    "IBacklogTaskRepository",
]
