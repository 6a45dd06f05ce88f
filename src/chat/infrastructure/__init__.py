"""
Chat Infrastructure Layer
=========================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
- External: agent invoker and document retriever adapters
"""

from src.chat.infrastructure.models import ChatSessionModel, ChatMessageModel
from src.chat.infrastructure.repositories import (
    SQLAlchemyChatSessionRepository,
    SQLAlchemyChatMessageRepository,
)
from src.chat.infrastructure.external import (
    LLMAgentInvoker,
    DocumentRetriever,
    FALLBACK_DOCUMENT,
    FALLBACK_PROCESSING_TIME_MS,
)

__all__ = [
    "ChatSessionModel",
    "ChatMessageModel",
    "SQLAlchemyChatSessionRepository",
    "SQLAlchemyChatMessageRepository",
    "LLMAgentInvoker",
    "DocumentRetriever",
    "FALLBACK_DOCUMENT",
    "FALLBACK_PROCESSING_TIME_MS",
]
