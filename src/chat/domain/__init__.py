"""
Chat Domain Layer
=================

Domain layer for the chat/triage module.

Contains:
- Entities: ChatSession, ChatMessage, AnalysisResult, retrieval results
- Parsing: ResponseParser and its ordered parse strategies

This layer is framework-agnostic and contains pure business logic.
"""

from src.chat.domain.entities import (
    ChatSession,
    ChatMessage,
    RetrievedDocument,
    RetrievalResult,
    LiveRetrieval,
    DegradedRetrieval,
    AgentResponse,
    AgentContext,
    AnalysisMetrics,
    AnalysisResult,
    AnalysisPromptBuilder,
)
from src.chat.domain.parsing import (
    ParseOutcome,
    ResponseParser,
    parse_whole_text,
    parse_outermost_braces,
)

__all__ = [
    "ChatSession",
    "ChatMessage",
    "RetrievedDocument",
    "RetrievalResult",
    "LiveRetrieval",
    "DegradedRetrieval",
    "AgentResponse",
    "AgentContext",
    "AnalysisMetrics",
    "AnalysisResult",
    "AnalysisPromptBuilder",
    "ParseOutcome",
    "ResponseParser",
    "parse_whole_text",
    "parse_outermost_braces",
]
