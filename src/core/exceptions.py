"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for classification agent (LLM) failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class DocumentSearchException(ExternalServiceException):
    """Exception for API2 document search failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Document Search", message, details)


# ========== Chat / triage ==========

class SessionNotFoundException(ResourceNotFoundException):
    """Referenced chat session does not exist."""

    def __init__(self, session_id: str):
        super().__init__("Session", session_id, {"session_id": session_id})


class SessionClosedException(DomainException):
    """Message submitted against a closed chat session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            f"Session {session_id} is closed",
            {"session_id": session_id}
        )


class MalformedAgentResponseException(DomainException):
    """Agent output could not be turned into a valid analysis result."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.raw_text = raw_text
        details = {}
        if raw_text is not None:
            details["raw_preview"] = raw_text[:200]
        super().__init__(message, details)


class AgentProcessingException(ApplicationException):
    """
    Umbrella error for any failure between document retrieval and parsing.

    The original error is available both as ``cause`` and ``__cause__``.
    """

    def __init__(self, cause: Exception, session_id: Optional[str] = None):
        self.cause = cause
        self.session_id = session_id
        super().__init__(
            f"Agent processing failed: {cause}",
            {
                "cause": type(cause).__name__,
                "session_id": session_id,
            }
        )
