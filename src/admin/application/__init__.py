"""
Admin Application Layer
=======================
"""

from src.admin.application.services import AdminService, PipelineMetrics
from src.admin.application.dto import (
    SessionListResponse,
    SessionMessagesResponse,
    MetricsResponse,
)

__all__ = [
    "AdminService",
    "PipelineMetrics",
    "SessionListResponse",
    "SessionMessagesResponse",
    "MetricsResponse",
]
