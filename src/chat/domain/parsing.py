"""
Agent Response Parsing
======================

Turns the agent's raw text into an ``AnalysisResult``.

Backends sometimes wrap valid JSON in prose, so parsing is an ordered chain
of strategies tried until one yields a JSON object:

1. ``parse_whole_text``: strict parse of the entire text
2. ``parse_outermost_braces``: strict parse of the first ``{`` .. last ``}``

The resulting object must carry a non-empty ``type`` and ``problem_summary``.
"""

import json
import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Sequence

from src.config import (
    VALID_CATEGORIES, VALID_SEVERITIES,
    ProblemCategory, Severity, MIN_PRIORITY, MAX_PRIORITY,
)
from src.core import MalformedAgentResponseException
from src.chat.domain.entities import (
    AnalysisMetrics, AnalysisResult, RetrievalResult,
)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_PRIORITY = 3


@dataclass(frozen=True)
class ParseOutcome:
    """Result of one parse strategy."""
    strategy: str
    data: Optional[dict] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None

    @classmethod
    def success(cls, strategy: str, data: dict) -> "ParseOutcome":
        return cls(strategy=strategy, data=data)

    @classmethod
    def failure(cls, strategy: str, error: str) -> "ParseOutcome":
        return cls(strategy=strategy, error=error)


ParseStrategy = Callable[[str], ParseOutcome]


def _load_object(strategy: str, text: str) -> ParseOutcome:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return ParseOutcome.failure(strategy, str(e))
    if not isinstance(value, dict):
        return ParseOutcome.failure(strategy, f"expected a JSON object, got {type(value).__name__}")
    return ParseOutcome.success(strategy, value)


def parse_whole_text(raw_text: str) -> ParseOutcome:
    return _load_object("whole_text", raw_text)


def parse_outermost_braces(raw_text: str) -> ParseOutcome:
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end <= start:
        return ParseOutcome.failure("outermost_braces", "no {...} block found")
    return _load_object("outermost_braces", raw_text[start:end + 1])


DEFAULT_STRATEGIES: tuple[ParseStrategy, ...] = (
    parse_whole_text,
    parse_outermost_braces,
)


# ========== Field coercion ==========

def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    # JSON integers may be too large for float
    return isinstance(value, int) or (isinstance(value, float) and math.isfinite(value))


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _coerce_confidence(value: Any) -> float:
    if not _is_number(value):
        return DEFAULT_CONFIDENCE
    return float(min(max(value, 0.0), 1.0))


def _coerce_priority(value: Any) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not _is_number(value):
        return DEFAULT_PRIORITY
    return min(max(int(value), MIN_PRIORITY), MAX_PRIORITY)


def _coerce_count(value: Any) -> int:
    if not _is_number(value) or value < 0:
        return 0
    return int(value)


def _coerce_choice(value: Any, allowed: list, default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


class ResponseParser:
    """
    Parses and validates agent output.

    Strategies are tried in order; the first object-producing one wins.
    """

    def __init__(self, strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES):
        if not strategies:
            raise ValueError("ResponseParser needs at least one strategy")
        self._strategies = tuple(strategies)

    def extract(self, raw_text: str) -> ParseOutcome:
        """
        Run the strategy chain.

        Raises:
            MalformedAgentResponseException: no strategy produced an object
        """
        if not isinstance(raw_text, str) or not raw_text.strip():
            raise MalformedAgentResponseException("Agent response is empty", raw_text or "")

        failures = []
        for strategy in self._strategies:
            outcome = strategy(raw_text)
            if outcome.ok:
                return outcome
            failures.append(f"{outcome.strategy}: {outcome.error}")

        raise MalformedAgentResponseException(
            "Agent response is not valid JSON (" + "; ".join(failures) + ")",
            raw_text,
        )

    def parse(self, raw_text: str) -> AnalysisResult:
        """
        Parse raw agent text into an AnalysisResult.

        Metrics are taken as reported by the agent; call ``normalize`` to
        replace the ones the pipeline measures itself.

        Raises:
            MalformedAgentResponseException: unparseable text or missing
                ``type`` / ``problem_summary``
        """
        data = self.extract(raw_text).data
        return self.from_dict(data, raw_text)

    @staticmethod
    def from_dict(data: dict, raw_text: Optional[str] = None) -> AnalysisResult:
        missing = [
            name for name in ("type", "problem_summary")
            if not _non_empty_str(data.get(name))
        ]
        if missing:
            raise MalformedAgentResponseException(
                f"Agent response missing required fields: {', '.join(missing)}",
                raw_text,
            )

        reported = data.get("metrics")
        if not isinstance(reported, dict):
            reported = {}
        reported_ids = reported.get("api2_docs_ids")

        notes = data.get("agent_notes")

        return AnalysisResult(
            type=data["type"].strip(),
            problem_summary=data["problem_summary"].strip(),
            category=_coerce_choice(data.get("category"), VALID_CATEGORIES, ProblemCategory.QUESTION),
            severity=_coerce_choice(data.get("severity"), VALID_SEVERITIES, Severity.MEDIUM),
            priority_guess=_coerce_priority(data.get("priority_guess")),
            agent_notes=notes if isinstance(notes, str) else "",
            metrics=AnalysisMetrics(
                tokens_used=_coerce_count(reported.get("tokens_used")),
                latency_ms=_coerce_count(reported.get("latency_ms")),
                api2_docs_count=_coerce_count(reported.get("api2_docs_count")),
                api2_docs_ids=[str(i) for i in reported_ids] if isinstance(reported_ids, list) else [],
                confidence=_coerce_confidence(reported.get("confidence")),
            ),
        )

    @staticmethod
    def normalize(
        result: AnalysisResult,
        *,
        latency_ms: int,
        retrieval: RetrievalResult,
        token_usage: Optional[int],
    ) -> AnalysisResult:
        """
        Overwrite metrics the agent cannot be trusted to report.

        Latency, retrieval counts/ids/time and token usage come from the
        pipeline's own measurements; confidence is the only metric kept
        from the agent.
        """
        metrics = replace(
            result.metrics,
            tokens_used=_coerce_count(token_usage),
            latency_ms=max(int(latency_ms), 0),
            api2_docs_count=retrieval.count,
            api2_docs_ids=retrieval.document_ids,
            api2_processing_time=retrieval.processing_time_ms,
        )
        return replace(result, metrics=metrics)
