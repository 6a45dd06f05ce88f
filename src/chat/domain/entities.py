"""
Chat Domain Entities
====================

Domain entities for the chat/triage module.

Pure Python business objects: chat sessions and their message log, the
documents retrieved for a message, and the structured analysis produced by
the classification agent.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, List, Any, Dict
from uuid import uuid4

from src.config import (
    SessionStatus, MessageRole, ProblemCategory, Severity,
    ANALYSIS_RESULT_TYPE,
)
from src.core import SessionClosedException


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


# ========== Session & messages ==========

@dataclass
class ChatSession:
    """
    A bounded conversation between one reporting user and the agent.

    Status only ever moves open -> closed.
    """
    id: str
    source: str
    status: str
    browser_session: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def open(cls, source: str, browser_session: Optional[dict] = None) -> "ChatSession":
        """Start a new session in the open state."""
        now = utcnow()
        return cls(
            id=new_id(),
            source=source,
            status=SessionStatus.OPEN,
            browser_session=dict(browser_session or {}),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.CLOSED

    def ensure_accepts_messages(self) -> None:
        """Raise SessionClosedException if no more messages are allowed."""
        if self.is_closed:
            raise SessionClosedException(self.id)

    def touch(self, at: Optional[datetime] = None) -> None:
        """Record activity (open -> open)."""
        self.updated_at = at or utcnow()

    def close(self, at: Optional[datetime] = None) -> bool:
        """
        Transition open -> closed.

        Returns:
            False if the session was already closed (nothing changes)
        """
        if self.is_closed:
            return False
        self.status = SessionStatus.CLOSED
        self.updated_at = at or utcnow()
        return True


@dataclass
class ChatMessage:
    """One entry of a session's append-only conversation log."""
    id: str
    session_id: str
    role: str
    message: str
    metadata: Dict[str, Any]
    created_at: datetime

    @classmethod
    def create(
        cls,
        session_id: str,
        role: str,
        message: str,
        metadata: Optional[dict] = None,
    ) -> "ChatMessage":
        return cls(
            id=new_id(),
            session_id=session_id,
            role=role,
            message=message,
            metadata=dict(metadata or {}),
            created_at=utcnow(),
        )

    @classmethod
    def from_user(cls, session_id: str, text: str, metadata: Optional[dict] = None) -> "ChatMessage":
        return cls.create(session_id, MessageRole.USER, text, metadata)

    @classmethod
    def from_agent(cls, session_id: str, result: "AnalysisResult") -> "ChatMessage":
        """Agent entry: body is the serialized analysis, metadata its metrics."""
        return cls.create(
            session_id,
            MessageRole.AGENT,
            result.to_json(),
            result.metrics.to_dict(),
        )

    @classmethod
    def from_failure(cls, session_id: str, error: Exception) -> "ChatMessage":
        """System entry documenting why the agent produced no analysis."""
        return cls.create(
            session_id,
            MessageRole.SYSTEM,
            f"Agent error: {error}",
            {"error": True, "error_type": type(error).__name__},
        )

    @property
    def is_error(self) -> bool:
        return bool(self.metadata.get("error"))


# ========== Retrieval ==========

@dataclass(frozen=True)
class RetrievedDocument:
    """Passage returned by document search."""
    id: str
    title: str
    content: str
    relevance: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RetrievalResult:
    """
    Documents found for a query, in relevance order.

    Either a ``LiveRetrieval`` or a ``DegradedRetrieval``; both carry the
    same shape so callers never special-case failures.
    """
    documents: List[RetrievedDocument]
    processing_time_ms: int

    @property
    def is_degraded(self) -> bool:
        return False

    @property
    def document_ids(self) -> List[str]:
        return [doc.id for doc in self.documents]

    @property
    def count(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class LiveRetrieval(RetrievalResult):
    """Result produced by the document-search service."""


@dataclass(frozen=True)
class DegradedRetrieval(RetrievalResult):
    """Placeholder result substituted when document search failed."""
    reason: str = ""

    @property
    def is_degraded(self) -> bool:
        return True


# ========== Agent ==========

@dataclass(frozen=True)
class AgentResponse:
    """Raw agent output plus reported token usage (None if not reported)."""
    raw_text: str
    token_usage: Optional[int] = None


@dataclass
class AgentContext:
    """Everything the agent sees about one inbound message."""
    user_message: str
    documents: List[RetrievedDocument]
    browser_session: Dict[str, Any]
    session_source: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict:
        return {
            "user_message": self.user_message,
            "api2_docs": [doc.to_dict() for doc in self.documents],
            "browser_session": self.browser_session or {},
            "session_source": self.session_source,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False, indent=2)


# ========== Analysis ==========

@dataclass
class AnalysisMetrics:
    """Metrics embedded in an analysis result."""
    tokens_used: int = 0
    latency_ms: int = 0
    api2_docs_count: int = 0
    api2_docs_ids: List[str] = field(default_factory=list)
    confidence: float = 0.5
    api2_processing_time: Optional[int] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")

    def to_dict(self) -> dict:
        data = asdict(self)
        if data["api2_processing_time"] is None:
            del data["api2_processing_time"]
        return data


@dataclass
class AnalysisResult:
    """Structured classification of a problem report."""
    type: str
    problem_summary: str
    category: str = ProblemCategory.QUESTION
    severity: str = Severity.MEDIUM
    priority_guess: int = 3
    agent_notes: str = ""
    metrics: AnalysisMetrics = field(default_factory=AnalysisMetrics)

    @property
    def creates_backlog_task(self) -> bool:
        return self.type == ANALYSIS_RESULT_TYPE

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "problem_summary": self.problem_summary,
            "category": self.category,
            "severity": self.severity,
            "priority_guess": self.priority_guess,
            "agent_notes": self.agent_notes,
            "metrics": self.metrics.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


class AnalysisPromptBuilder:
    """
    Builds the agent prompt: fixed instructions plus one JSON context block.
    """

    SYSTEM_PROMPT = """You are the AI agent of the "backlog" project, specialised in analysing technical problems reported by users.

YOUR TASKS:
1. Read messages sent by users through the support widget
2. Analyse the problem description and classify it
3. Use the documentation excerpts found by the search service (api2_docs)
4. Produce a structured problem description for the backlog
5. Determine severity and priority
6. Report analysis metrics

CATEGORIES:
- bug: an error, failure or incorrect behaviour
- question: a request for information or how-to
- improvement: a suggestion or new functionality

SEVERITY:
- critical: the system does not work at all, data is lost
- high: core functionality is broken
- medium: a workaround exists but the problem is serious
- low: minor or cosmetic problem

PRIORITY (1-5, 1 is the highest):
1: blocking, fix immediately
2: high, fix within a day
3: medium, fix within a week
4: low, fix in the next release
5: very low, fix when possible

IMPORTANT:
- Take the browser and device context into account
- Write problem_summary and agent_notes in the user's language
- Always answer strictly in the JSON format below
- Never add text outside the JSON

RESPONSE FORMAT:
{
  "type": "analysis_result",
  "problem_summary": "Short but complete description of the problem",
  "category": "bug|question|improvement",
  "severity": "critical|high|medium|low",
  "priority_guess": number (1-5),
  "agent_notes": "Additional notes, context, recommendations",
  "metrics": {
    "tokens_used": number,
    "latency_ms": number,
    "api2_docs_count": number,
    "api2_docs_ids": string[],
    "confidence": number (0.0-1.0)
  }
}"""

    @classmethod
    def get_system_prompt(cls) -> str:
        return cls.SYSTEM_PROMPT

    @classmethod
    def build_context(
        cls,
        message: str,
        session: ChatSession,
        retrieval: RetrievalResult,
    ) -> AgentContext:
        """Assemble the context block for one inbound message."""
        return AgentContext(
            user_message=message,
            documents=list(retrieval.documents),
            browser_session=session.browser_session or {},
            session_source=session.source,
        )
