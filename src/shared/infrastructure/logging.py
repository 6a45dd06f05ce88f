"""
Structured Logging
==================

JSON-structured logging with correlation ID tracking.

Provides:
- Structured JSON logs (parseable by log aggregators)
- Correlation ID for request tracing
- Contextual loggers for modules
- Latency timing for external calls

Usage:
    from src.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Message accepted", extra={"session_id": session.id})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pythonjsonlogger import jsonlogger

_SENSITIVE_KEYS = ("password", "api_key", "authorization")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, correlation_id and environment.

    Values under password/token/api-key keys are redacted; token counters
    (``tokens_used``, ``total_tokens``) are kept.
    """

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id
        elif "correlation_id" in message_dict:
            log_record["correlation_id"] = message_dict["correlation_id"]

        log_record["environment"] = getattr(record, "environment", self._environment)

        for key, value in list(log_record.items()):
            if isinstance(value, str) and _is_sensitive(key):
                log_record[key] = "***REDACTED***"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    if any(marker in lowered for marker in _SENSITIVE_KEYS):
        return True
    return "token" in lowered and not lowered.endswith("tokens") and "tokens_" not in lowered


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure structured JSON logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name for log context
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into each call's ``extra``."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_context_logger(
    name: str, correlation_id: Optional[str] = None
) -> logging.Logger | logging.LoggerAdapter:
    """
    Get a logger bound to a request correlation ID.

    Args:
        name: Logger name
        correlation_id: Request correlation ID

    Returns:
        The plain logger, or a ContextLoggerAdapter carrying correlation_id
    """
    logger = get_logger(name)
    if correlation_id:
        return ContextLoggerAdapter(logger, {"correlation_id": correlation_id})
    return logger


class LatencyTimer:
    """Wall-clock timer filled in by ``log_latency`` when its block exits."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self.elapsed_ms: int = 0

    def stop(self) -> int:
        self.elapsed_ms = int((time.perf_counter() - self._start) * 1000)
        return self.elapsed_ms


@contextmanager
def log_latency(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    **extra_context: Any,
) -> Iterator[LatencyTimer]:
    """
    Measure and log the latency of a block.

    Usage:
        with log_latency(logger, "agent_call", session_id=sid) as timer:
            response = await invoker.invoke(prompt, context)
        latency_ms = timer.elapsed_ms

    The timer is stopped (and logged) even when the block raises.
    """
    timer = LatencyTimer()
    try:
        yield timer
    finally:
        timer.stop()
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": timer.elapsed_ms,
                **extra_context,
            },
        )
