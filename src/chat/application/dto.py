"""
Chat Application DTOs
=====================

Pydantic models for request/response validation of the chat API.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.chat.domain import ChatSession, ChatMessage, AnalysisResult


# ========== Type Aliases for Literals ==========
SourceStr = Literal["widget", "agent", "admin"]
SessionStatusStr = Literal["open", "closed"]
RoleStr = Literal["user", "agent", "system"]

MAX_MESSAGE_LENGTH = 10000


# ========== Request DTOs ==========

class BrowserSessionInfo(BaseModel):
    """Client environment reported by the widget; every field optional."""
    model_config = ConfigDict(extra="allow")

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None


class CreateSessionRequest(BaseModel):
    """Request model for opening a chat session."""
    source: SourceStr = Field(..., description="Where the session was opened from")
    browser_session: Optional[BrowserSessionInfo] = None


class CreateMessageRequest(BaseModel):
    """Request model for submitting a user message."""
    session_id: str = Field(..., min_length=1, description="Chat session id")
    message: str = Field(..., min_length=1, description="Problem description")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Reject blank and over-long messages."""
        if not v.strip():
            raise ValueError("Message must not be blank")
        if len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message too long (max {MAX_MESSAGE_LENGTH} characters)")
        return v


# ========== Response DTOs ==========

class ChatSessionResponse(BaseModel):
    id: str
    source: SourceStr
    status: SessionStatusStr
    browser_session: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, session: ChatSession) -> "ChatSessionResponse":
        return cls(
            id=session.id,
            source=session.source,
            status=session.status,
            browser_session=session.browser_session or {},
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class ChatMessageResponse(BaseModel):
    id: str
    session_id: str
    role: RoleStr
    message: str
    metadata: Dict[str, Any]
    created_at: datetime

    @classmethod
    def from_domain(cls, message: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.id,
            session_id=message.session_id,
            role=message.role,
            message=message.message,
            metadata=message.metadata or {},
            created_at=message.created_at,
        )


class SessionDetailResponse(ChatSessionResponse):
    """Session with its messages in display order."""
    messages: List[ChatMessageResponse]


class AnalysisMetricsInfo(BaseModel):
    tokens_used: int
    latency_ms: int
    api2_docs_count: int
    api2_docs_ids: List[str]
    confidence: float = Field(..., ge=0.0, le=1.0)
    api2_processing_time: Optional[int] = None


class AnalysisResultInfo(BaseModel):
    type: str
    problem_summary: str
    category: str
    severity: str
    priority_guess: int
    agent_notes: str
    metrics: AnalysisMetricsInfo

    @classmethod
    def from_domain(cls, result: AnalysisResult) -> "AnalysisResultInfo":
        return cls(**result.to_dict())


class MessageProcessedResponse(BaseModel):
    """Response model for a triaged message."""
    success: bool = True
    session_id: str
    user_message_id: str
    agent_message_id: str
    agent_response: AnalysisResultInfo
    backlog_task_id: Optional[str] = None
    timestamp: datetime
