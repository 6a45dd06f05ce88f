"""
Backlog Infrastructure Layer
============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
"""

from src.backlog.infrastructure.models import BacklogTaskModel
from src.backlog.infrastructure.repositories import SQLAlchemyBacklogTaskRepository

__all__ = [
    "BacklogTaskModel",
    "SQLAlchemyBacklogTaskRepository",
]
