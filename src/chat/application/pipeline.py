"""
Triage Pipeline
===============

Orchestrates one inbound user message end to end:

1. load the session and reject unknown or closed ones (no side effects)
2. log the user message
3. refresh the session's updated_at
4. search documents (never fails, may degrade)
5. invoke the agent (latency measured around this call only)
6. parse, validate and normalize the analysis

Success logs an agent message and, for ``analysis_result`` analyses, creates
a backlog task. Any failure in steps 3-6 logs a system message and raises
``AgentProcessingException``. Each write commits on its own; nothing is
retried.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from src.backlog.application import BacklogService, IBacklogTaskRepository
from src.backlog.domain import BacklogTaskFactory
from src.chat.application.services import (
    IChatSessionRepository, IChatMessageRepository,
    IDocumentRetriever, IAgentInvoker,
)
from src.chat.domain import (
    ChatSession, ChatMessage, AnalysisResult, AnalysisPromptBuilder, ResponseParser,
)
from src.chat.domain.entities import utcnow
from src.core import (
    SessionNotFoundException, ValidationException, AgentProcessingException,
)
from src.shared.infrastructure.logging import get_context_logger, log_latency


@dataclass
class TriageOutcome:
    """Result of a successfully triaged message."""
    session_id: str
    user_message_id: str
    agent_message_id: str
    analysis_result: AnalysisResult
    backlog_task_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class TriagePipeline:
    """
    Message triage orchestrator.

    All collaborators are injected so tests can substitute stand-ins for
    the agent and the document search.
    """

    def __init__(
        self,
        session_repository: IChatSessionRepository,
        message_repository: IChatMessageRepository,
        backlog_repository: IBacklogTaskRepository,
        document_retriever: IDocumentRetriever,
        agent_invoker: IAgentInvoker,
        parser: Optional[ResponseParser] = None,
        correlation_id: Optional[str] = None,
    ):
        self._sessions = session_repository
        self._messages = message_repository
        self._backlog = BacklogService(backlog_repository)
        self._retriever = document_retriever
        self._invoker = agent_invoker
        self._parser = parser or ResponseParser()
        self._logger = get_context_logger(__name__, correlation_id)

    async def handle_message(
        self,
        session_id: str,
        message_text: str,
        metadata: Optional[dict] = None,
    ) -> TriageOutcome:
        """
        Triage one inbound message.

        Raises:
            SessionNotFoundException: unknown session
            SessionClosedException: session is closed
            ValidationException: empty message text
            AgentProcessingException: touch/retrieval/agent/parse failure
                (a system message has been logged)
        """
        if not isinstance(message_text, str) or not message_text.strip():
            raise ValidationException("Message text must not be empty")

        session = await self._sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundException(session_id)
        session.ensure_accepts_messages()

        user_message = await self._messages.add(
            ChatMessage.from_user(session.id, message_text, metadata)
        )

        self._logger.info(
            "Message accepted",
            extra={"session_id": session.id, "message_id": user_message.id}
        )

        # Once the user message is stored it gets exactly one reply.
        try:
            now = utcnow()
            await self._sessions.touch(session.id, now)
            session.touch(now)

            result = await self._analyze(session, message_text)
        except Exception as e:
            self._logger.error(
                "Agent processing failed",
                extra={
                    "session_id": session.id,
                    "message_id": user_message.id,
                    "error_type": type(e).__name__,
                    "error": str(e),
                }
            )
            await self._messages.add(ChatMessage.from_failure(session.id, e))
            raise AgentProcessingException(e, session.id) from e

        agent_message = await self._messages.add(ChatMessage.from_agent(session.id, result))

        backlog_task_id = None
        if result.creates_backlog_task:
            task = BacklogTaskFactory.from_analysis(result, message_text, session.id)
            backlog_task_id = (await self._backlog.create_task(task)).id

        return TriageOutcome(
            session_id=session.id,
            user_message_id=user_message.id,
            agent_message_id=agent_message.id,
            analysis_result=result,
            backlog_task_id=backlog_task_id,
        )

    async def _analyze(self, session: ChatSession, message_text: str) -> AnalysisResult:
        retrieval = await self._retriever.retrieve(message_text)
        if retrieval.is_degraded:
            self._logger.warning(
                "Document search degraded, using fallback documents",
                extra={"session_id": session.id, "reason": getattr(retrieval, "reason", "")}
            )

        context = AnalysisPromptBuilder.build_context(message_text, session, retrieval)

        with log_latency(self._logger, "agent_call", session_id=session.id) as timer:
            response = await self._invoker.invoke(
                AnalysisPromptBuilder.get_system_prompt(), context
            )

        parsed = self._parser.parse(response.raw_text)
        return self._parser.normalize(
            parsed,
            latency_ms=timer.elapsed_ms,
            retrieval=retrieval,
            token_usage=response.token_usage,
        )
