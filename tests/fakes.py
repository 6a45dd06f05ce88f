"""Deterministic stand-ins for the agent backend and document search."""

import json
from typing import List, Optional

from src.chat.application import IDocumentRetriever
from src.chat.domain import LiveRetrieval, RetrievedDocument, RetrievalResult
from src.infrastructure.llm import ChatCompletionResult, ILLMClient


def analysis_json(**overrides) -> str:
    """Agent output for a typical bug report."""
    payload = {
        "type": "analysis_result",
        "problem_summary": "Страница сайта возвращает 404",
        "category": "bug",
        "severity": "high",
        "priority_guess": 2,
        "agent_notes": "Ошибка 404 обычно указывает на отсутствующий ресурс или неправильный URL",
        "metrics": {
            "tokens_used": 9999,
            "latency_ms": 1,
            "api2_docs_count": 42,
            "api2_docs_ids": ["made-up"],
            "confidence": 0.83,
        },
    }
    payload.update(overrides)
    return json.dumps(payload, ensure_ascii=False)


# --- Stand-ins for external services ---


class ScriptedLLMClient(ILLMClient):
    """Returns queued replies in order; raises queued exceptions."""

    def __init__(self, replies: Optional[list] = None, total_tokens: Optional[int] = 321):
        self.replies = list(replies or [])
        self.total_tokens = total_tokens
        self.calls: List[dict] = []

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        self.calls.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "operation": operation,
        })
        reply = self.replies.pop(0) if self.replies else analysis_json()
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletionResult(
            content=reply,
            model="scripted",
            total_tokens=self.total_tokens,
        )


class StubRetriever(IDocumentRetriever):
    """Returns a fixed result and records queries."""

    def __init__(self, result: Optional[RetrievalResult] = None):
        self.result = result or LiveRetrieval(
            documents=[
                RetrievedDocument(id="web-404", title="404 errors", content="Check the URL", relevance=0.9),
                RetrievedDocument(id="web-500", title="Server errors", content="Check logs", relevance=0.4),
            ],
            processing_time_ms=37,
        )
        self.queries: List[str] = []

    async def retrieve(self, query: str) -> RetrievalResult:
        self.queries.append(query)
        return self.result

