"""
Document Search Infrastructure
===============================

HTTP client for the external document-search service ("API2").

API2 contract:
    POST {API2_URL}/search  {"query": str, "limit": int}
    -> {"docs": [{"id", "title", "content", "relevance"}],
        "metrics": {"processing_time_ms": int}}

This client reports every failure as ``DocumentSearchException``; deciding
what to do about it (the degraded fallback) is the caller's business.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import httpx

from src.config import Settings, settings as default_settings
from src.core import DocumentSearchException


@dataclass
class SearchResponse:
    """Raw search payload returned by API2."""
    docs: List[dict] = field(default_factory=list)
    processing_time_ms: int = 0


class Api2Client:
    """
    Async client for API2 document search.

    The underlying ``httpx.AsyncClient`` is created lazily and reused;
    pass ``transport`` to substitute a mock transport in tests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self._base_url = (base_url or config.api2_url).rstrip("/")
        self._timeout = timeout_seconds or config.api2_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def search(self, query: str, limit: int) -> SearchResponse:
        """
        Search documents relevant to ``query``.

        Raises:
            DocumentSearchException: transport error, non-2xx status or
                a payload that does not match the contract
        """
        try:
            response = await self._get_client().post(
                "/search", json={"query": query, "limit": limit}
            )
            response.raise_for_status()
            payload: Any = response.json()
        except httpx.HTTPStatusError as e:
            raise DocumentSearchException(
                f"search returned HTTP {e.response.status_code}",
                {"status_code": e.response.status_code}
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DocumentSearchException(f"search request failed: {e}") from e

        if not isinstance(payload, dict):
            raise DocumentSearchException("search response is not a JSON object")

        docs = payload.get("docs") or []
        if not isinstance(docs, list):
            raise DocumentSearchException("search response 'docs' is not a list")

        metrics = payload.get("metrics") or {}
        processing_time = metrics.get("processing_time_ms", 0) if isinstance(metrics, dict) else 0
        try:
            processing_time_ms = int(processing_time or 0)
        except (TypeError, ValueError):
            processing_time_ms = 0

        return SearchResponse(docs=docs, processing_time_ms=processing_time_ms)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
