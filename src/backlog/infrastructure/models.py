"""
Backlog Infrastructure Models
=============================

SQLAlchemy ORM models for the backlog module.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database import Base, JSONType


class BacklogTaskModel(Base):
    """
    Database model for BacklogTask entity.

    Rows are insert-only.
    """
    __tablename__ = "backlog_tasks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    ticket_text: Mapped[str] = mapped_column(Text, nullable=False)
    ai_summary: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)

    # total_tokens, total_latency_ms, api2_calls, agent_confidence, created_from_session_id
    metrics: Mapped[dict] = mapped_column(JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc)
    )
