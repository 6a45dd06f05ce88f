"""
Chat External Service Adapters
===============================

Adapters for external services (classification agent, document search)
used by the triage pipeline.

Implements the interfaces defined in the application layer using concrete
external service clients.
"""

from typing import List, Optional

from src.chat.application import IAgentInvoker, IDocumentRetriever
from src.chat.domain import (
    AgentContext, AgentResponse, RetrievedDocument,
    RetrievalResult, LiveRetrieval, DegradedRetrieval,
)
from src.config import Settings, settings as default_settings
from src.infrastructure.docsearch import Api2Client
from src.infrastructure.llm import ILLMClient
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


FALLBACK_DOCUMENT = RetrievedDocument(
    id="auth-12",
    title="Ошибка 401 при авторизации",
    content="Чаще всего вызвана expired JWT cookie...",
    relevance=0.92,
)
FALLBACK_PROCESSING_TIME_MS = 120


class LLMAgentInvoker(IAgentInvoker):
    """
    Adapter that wraps the infrastructure LLM client.

    The agent receives exactly two messages: the fixed instructions and the
    JSON-serialized context block.
    """

    def __init__(self, client: ILLMClient, config: Optional[Settings] = None):
        config = config or default_settings
        self._client = client
        self._temperature = config.llm_temperature
        self._max_tokens = config.llm_max_tokens

    @property
    def client(self) -> ILLMClient:
        return self._client

    async def invoke(self, system_prompt: str, context: AgentContext) -> AgentResponse:
        """Send instructions plus context; return raw text and token usage."""
        completion = await self._client.chat_completion(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": context.to_json()},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            operation="analysis",
        )
        return AgentResponse(
            raw_text=completion.content,
            token_usage=completion.total_tokens,
        )

    async def close(self) -> None:
        await self._client.close()


class DocumentRetriever(IDocumentRetriever):
    """
    Adapter that wraps the API2 search client.

    Never raises: any failure yields the fixed fallback document so the
    agent still receives a context block of the usual shape.
    """

    def __init__(
        self,
        client: Optional[Api2Client] = None,
        limit: Optional[int] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self._client = client or Api2Client(config=config)
        self._limit = limit or config.api2_search_limit

    @property
    def limit(self) -> int:
        return self._limit

    async def retrieve(self, query: str) -> RetrievalResult:
        """Search documents for ``query``; degrade on any failure."""
        try:
            response = await self._client.search(query, self._limit)
            documents = self._to_documents(response.docs)
        except Exception as e:
            logger.warning(
                "Document search failed, using fallback",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return DegradedRetrieval(
                documents=[FALLBACK_DOCUMENT],
                processing_time_ms=FALLBACK_PROCESSING_TIME_MS,
                reason=str(e),
            )

        logger.debug(
            "Document search finished",
            extra={
                "docs_count": len(documents),
                "processing_time_ms": response.processing_time_ms,
            }
        )
        return LiveRetrieval(
            documents=documents,
            processing_time_ms=response.processing_time_ms,
        )

    def _to_documents(self, docs: List[dict]) -> List[RetrievedDocument]:
        # Malformed entries raise and degrade the whole search
        return [
            RetrievedDocument(
                id=str(doc["id"]),
                title=str(doc.get("title") or ""),
                content=str(doc.get("content") or ""),
                relevance=float(doc.get("relevance") or 0.0),
            )
            for doc in docs[:self._limit]
        ]

    async def close(self) -> None:
        await self._client.close()
