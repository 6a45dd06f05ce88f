"""
Chat Controllers (API Routes)
=============================

FastAPI routes for the support widget: sessions and message triage.

Controllers delegate to application services; domain errors are turned
into HTTP responses by the application exception handler.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.backlog.infrastructure import SQLAlchemyBacklogTaskRepository
from src.chat.application import (
    ChatService, TriagePipeline,
    CreateSessionRequest, CreateMessageRequest,
    ChatSessionResponse, ChatMessageResponse, SessionDetailResponse,
    AnalysisResultInfo, MessageProcessedResponse,
    IAgentInvoker, IDocumentRetriever,
)
from src.chat.infrastructure import (
    SQLAlchemyChatSessionRepository,
    SQLAlchemyChatMessageRepository,
)
from src.infrastructure.database import get_session
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])


# ========== Example payloads for Swagger ==========

MESSAGE_REQUEST_EXAMPLE = {
    "session_id": "6f1c2a8e-3b0d-4c55-9a51-2f0e6c1d9b7a",
    "message": "Сайт выдаёт 404 при открытии страницы заказа",
    "metadata": {}
}

MESSAGE_RESPONSE_EXAMPLE = {
    "success": True,
    "session_id": "6f1c2a8e-3b0d-4c55-9a51-2f0e6c1d9b7a",
    "user_message_id": "0b7e5c9a-0d7f-4a3e-8a86-5e2b7d1f4c11",
    "agent_message_id": "9d3a1f4e-6c2b-47d8-b0e5-3a8f2c7d6e90",
    "agent_response": {
        "type": "analysis_result",
        "problem_summary": "Страница заказа возвращает 404",
        "category": "bug",
        "severity": "high",
        "priority_guess": 2,
        "agent_notes": "Ошибка 404 обычно указывает на отсутствующий ресурс или неправильный URL",
        "metrics": {
            "tokens_used": 412,
            "latency_ms": 1830,
            "api2_docs_count": 2,
            "api2_docs_ids": ["auth-12", "auth-19"],
            "confidence": 0.83,
            "api2_processing_time": 95
        }
    },
    "backlog_task_id": "c2d4e6f8-1a3b-4c5d-8e7f-9a0b1c2d3e4f",
    "timestamp": "2024-01-15T10:30:00Z"
}


# ========== Dependencies ==========

def get_chat_service(db: AsyncSession = Depends(get_session)) -> ChatService:
    """Session lifecycle service bound to the request's DB session."""
    return ChatService(
        SQLAlchemyChatSessionRepository(db),
        SQLAlchemyChatMessageRepository(db),
    )


def get_triage_pipeline(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TriagePipeline:
    """Triage pipeline with the agent and retriever built at startup."""
    agent_invoker: IAgentInvoker = getattr(request.app.state, "agent_invoker", None)
    document_retriever: IDocumentRetriever = getattr(request.app.state, "document_retriever", None)

    if agent_invoker is None or document_retriever is None:
        raise HTTPException(
            status_code=503,
            detail="Triage pipeline not initialized"
        )

    return TriagePipeline(
        session_repository=SQLAlchemyChatSessionRepository(db),
        message_repository=SQLAlchemyChatMessageRepository(db),
        backlog_repository=SQLAlchemyBacklogTaskRepository(db),
        document_retriever=document_retriever,
        agent_invoker=agent_invoker,
        correlation_id=getattr(request.state, "correlation_id", None),
    )


# ========== Route Handlers ==========

@router.post(
    "/sessions",
    response_model=ChatSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a chat session",
    responses={
        201: {"description": "Session opened"},
        422: {"description": "Invalid source or browser session"}
    }
)
async def create_session(
    payload: CreateSessionRequest,
    service: ChatService = Depends(get_chat_service)
):
    browser_session = (
        payload.browser_session.model_dump(exclude_none=True)
        if payload.browser_session else None
    )
    session = await service.create_session(payload.source, browser_session)
    return ChatSessionResponse.from_domain(session)


@router.post(
    "/messages",
    response_model=MessageProcessedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a user message for triage",
    description="""
    Log the message, look up related documentation, ask the agent to
    classify the problem and, for analysis results, create a backlog task.

    **Errors**:
    - `404` unknown session
    - `409` session is closed (nothing is recorded)
    - `502` agent failure (a system message is recorded in the session)
    """,
    responses={
        201: {
            "description": "Message triaged",
            "content": {
                "application/json": {
                    "example": MESSAGE_RESPONSE_EXAMPLE
                }
            }
        },
        404: {"description": "Session not found"},
        409: {"description": "Session is closed"},
        502: {"description": "Agent processing failed"}
    }
)
async def send_message(
    request: Request,
    payload: CreateMessageRequest,
    pipeline: TriagePipeline = Depends(get_triage_pipeline)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.info(
        "Processing chat message",
        extra={
            "correlation_id": correlation_id,
            "session_id": payload.session_id,
            "message_length": len(payload.message)
        }
    )

    outcome = await pipeline.handle_message(
        payload.session_id, payload.message, payload.metadata
    )

    return MessageProcessedResponse(
        session_id=outcome.session_id,
        user_message_id=outcome.user_message_id,
        agent_message_id=outcome.agent_message_id,
        agent_response=AnalysisResultInfo.from_domain(outcome.analysis_result),
        backlog_task_id=outcome.backlog_task_id,
        timestamp=outcome.timestamp,
    )


@router.get(
    "/sessions/{session_id}",
    response_model=SessionDetailResponse,
    summary="Get a session with its messages",
    responses={404: {"description": "Session not found"}}
)
async def get_chat_session(
    session_id: str,
    service: ChatService = Depends(get_chat_service)
):
    transcript = await service.get_session(session_id)
    base = ChatSessionResponse.from_domain(transcript.session)
    return SessionDetailResponse(
        **base.model_dump(),
        messages=[ChatMessageResponse.from_domain(m) for m in transcript.messages],
    )


@router.post(
    "/sessions/{session_id}/close",
    response_model=ChatSessionResponse,
    summary="Close a session",
    description="Closing an already closed session returns it unchanged.",
    responses={404: {"description": "Session not found"}}
)
async def close_chat_session(
    session_id: str,
    service: ChatService = Depends(get_chat_service)
):
    session = await service.close_session(session_id)
    return ChatSessionResponse.from_domain(session)


# Export router
chat_router = router
