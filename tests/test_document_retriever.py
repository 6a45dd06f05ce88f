"""Tests for the API2 search client and the degrading document retriever."""

import json

import httpx
import pytest

from src.chat.domain import DegradedRetrieval, LiveRetrieval
from src.chat.infrastructure import (
    DocumentRetriever,
    FALLBACK_DOCUMENT,
    FALLBACK_PROCESSING_TIME_MS,
)
from src.core import DocumentSearchException
from src.infrastructure.docsearch import Api2Client


SEARCH_PAYLOAD = {
    "docs": [
        {"id": "auth-12", "title": "Ошибка 401", "content": "expired JWT", "relevance": 0.92},
        {"id": "auth-19", "title": "Сброс пароля", "content": "reset flow", "relevance": 0.71},
    ],
    "metrics": {"processing_time_ms": 85},
}


def make_client(handler) -> Api2Client:
    return Api2Client(base_url="http://api2.test", transport=httpx.MockTransport(handler))


class TestApi2Client:
    async def test_posts_query_and_limit(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=SEARCH_PAYLOAD)

        client = make_client(handler)
        response = await client.search("не могу войти", limit=5)
        await client.close()

        assert seen == {"path": "/search", "body": {"query": "не могу войти", "limit": 5}}
        assert [d["id"] for d in response.docs] == ["auth-12", "auth-19"]
        assert response.processing_time_ms == 85

    async def test_http_error_status(self):
        client = make_client(lambda request: httpx.Response(503, json={"error": "down"}))

        with pytest.raises(DocumentSearchException) as exc_info:
            await client.search("q", limit=5)

        assert exc_info.value.details["status_code"] == 503
        await client.close()

    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(DocumentSearchException):
            await client.search("q", limit=5)
        await client.close()

    async def test_docs_must_be_a_list(self):
        client = make_client(lambda request: httpx.Response(200, json={"docs": "nope"}))

        with pytest.raises(DocumentSearchException):
            await client.search("q", limit=5)
        await client.close()

    async def test_missing_metrics_default_to_zero(self):
        client = make_client(lambda request: httpx.Response(200, json={"docs": []}))

        response = await client.search("q", limit=5)

        assert response.docs == []
        assert response.processing_time_ms == 0
        await client.close()


class TestDocumentRetriever:
    async def test_live_result(self):
        retriever = DocumentRetriever(
            client=make_client(lambda request: httpx.Response(200, json=SEARCH_PAYLOAD)),
            limit=5,
        )

        result = await retriever.retrieve("не могу войти")
        await retriever.close()

        assert isinstance(result, LiveRetrieval)
        assert not result.is_degraded
        assert result.document_ids == ["auth-12", "auth-19"]
        assert result.documents[0].relevance == 0.92
        assert result.processing_time_ms == 85

    async def test_result_capped_at_limit(self):
        retriever = DocumentRetriever(
            client=make_client(lambda request: httpx.Response(200, json=SEARCH_PAYLOAD)),
            limit=1,
        )

        result = await retriever.retrieve("q")
        await retriever.close()

        assert result.count == 1

    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: httpx.Response(500),
            lambda request: httpx.Response(200, text="not json"),
            lambda request: httpx.Response(200, json={"docs": [{"title": "no id"}]}),
        ],
        ids=["server-error", "bad-body", "doc-without-id"],
    )
    async def test_failures_degrade_to_fallback(self, handler):
        retriever = DocumentRetriever(client=make_client(handler), limit=5)

        result = await retriever.retrieve("q")
        await retriever.close()

        assert isinstance(result, DegradedRetrieval)
        assert result.is_degraded
        assert result.documents == [FALLBACK_DOCUMENT]
        assert result.processing_time_ms == FALLBACK_PROCESSING_TIME_MS
        assert result.reason

    async def test_connection_error_degrades(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        retriever = DocumentRetriever(client=make_client(refuse), limit=5)

        result = await retriever.retrieve("q")
        await retriever.close()

        assert result.count == 1
        assert result.document_ids == ["auth-12"]

    def test_fallback_document(self):
        assert FALLBACK_DOCUMENT.id == "auth-12"
        assert FALLBACK_DOCUMENT.relevance == 0.92
        assert FALLBACK_PROCESSING_TIME_MS == 120
