"""
Chat Application Layer
======================

Contains:
- Services: ChatService (session lifecycle), TriagePipeline (message triage)
- DTOs: Data transfer objects for API serialization
- Interfaces: repositories, document retriever, agent invoker
"""

from src.chat.application.dto import (
    BrowserSessionInfo,
    CreateSessionRequest,
    CreateMessageRequest,
    ChatSessionResponse,
    ChatMessageResponse,
    SessionDetailResponse,
    AnalysisMetricsInfo,
    AnalysisResultInfo,
    MessageProcessedResponse,
)
from src.chat.application.services import (
    ChatService,
    SessionTranscript,
    IChatSessionRepository,
    IChatMessageRepository,
    IDocumentRetriever,
    IAgentInvoker,
)
from src.chat.application.pipeline import TriagePipeline, TriageOutcome

__all__ = [
    # DTOs
    "BrowserSessionInfo",
    "CreateSessionRequest",
    "CreateMessageRequest",
    "ChatSessionResponse",
    "ChatMessageResponse",
    "SessionDetailResponse",
    "AnalysisMetricsInfo",
    "AnalysisResultInfo",
    "MessageProcessedResponse",
    # Services
    "ChatService",
    "SessionTranscript",
    "TriagePipeline",
    "TriageOutcome",
    # Interfaces
    "IChatSessionRepository",
    "IChatMessageRepository",
    "IDocumentRetriever",
    "IAgentInvoker",
]
