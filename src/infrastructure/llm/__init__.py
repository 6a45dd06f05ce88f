"""
LLM Client Infrastructure
==========================

Wrapper for OpenAI-compatible chat backends providing a clean interface for
the classification agent.

The application layer depends on ``ILLMClient``; which concrete client is
used (live or stand-in) is decided once at startup by ``create_llm_client``.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from src.config import Settings, settings as default_settings
from src.core import LLMException, ConfigurationException
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
        total_tokens: Optional[int] = None,
        latency_ms: int = 0
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        if total_tokens is None and prompt_tokens is not None and completion_tokens is not None:
            total_tokens = prompt_tokens + completion_tokens
        # None when the backend reports no usage
        self.total_tokens = total_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Only the chat completion used by the agent is defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""

    async def close(self) -> None:
        """Release network resources, if any."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Works against api.openai.com or any OpenAI-compatible endpoint
    configured through ``openai_base_url``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[Settings] = None
    ):
        config = config or default_settings
        self._api_key = api_key or config.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=config.openai_base_url,
            timeout=config.llm_timeout_seconds,
        )
        self._model = config.llm_model

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation name for logs

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {e}") from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if not response.choices:
            raise LLMException("Chat completion returned no choices")

        content = response.choices[0].message.content or ""
        usage = response.usage

        logger.debug(
            "LLM call finished",
            extra={
                "operation": operation,
                "model": self._model,
                "latency_ms": latency_ms,
                "total_tokens": usage.total_tokens if usage else None,
            }
        )

        return ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
            total_tokens=usage.total_tokens if usage else None,
            latency_ms=latency_ms
        )

    async def close(self) -> None:
        await self._client.close()


MOCK_ANALYSIS = {
    "type": "analysis_result",
    "problem_summary": "Mock analysis: this is a simulated response for development.",
    "category": "question",
    "severity": "medium",
    "priority_guess": 3,
    "agent_notes": "This is a mock response. Set OPENAI_API_KEY for real analysis.",
    "metrics": {
        "tokens_used": 150,
        "latency_ms": 1000,
        "api2_docs_count": 2,
        "api2_docs_ids": ["mock-1", "mock-2"],
        "confidence": 0.7,
    },
}
MOCK_TOTAL_TOKENS = 150


class MockLLMClient(ILLMClient):
    """
    Deterministic stand-in used when no backend is configured.

    Sleeps a fixed interval and returns a canned analysis envelope.
    """

    def __init__(self, delay_seconds: float = 1.0):
        self._delay_seconds = delay_seconds
        self.calls = 0

    @property
    def model(self) -> str:
        return "mock-model"

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return the canned analysis after the simulated delay."""
        self.calls += 1
        logger.debug(
            "Mock agent called",
            extra={"operation": operation, "messages": len(messages)}
        )

        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)

        return ChatCompletionResult(
            content=json.dumps(MOCK_ANALYSIS, ensure_ascii=False),
            model=self.model,
            total_tokens=MOCK_TOTAL_TOKENS,
            latency_ms=int(self._delay_seconds * 1000)
        )


def create_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """
    Build the classification backend client from settings.

    Falls back to ``MockLLMClient`` when no API key is configured or
    ``mock_llm`` is set.
    """
    config = config or default_settings

    if not config.agent_configured:
        logger.warning(
            "OPENAI_API_KEY not configured or MOCK_LLM set - using mock agent",
            extra={"mock_llm": config.mock_llm}
        )
        return MockLLMClient(delay_seconds=config.mock_llm_delay_seconds)

    return OpenAILLMClient(config=config)
