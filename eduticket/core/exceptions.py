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


class AuthorizationException(ApplicationException):
    """Exception when a caller may not act on a resource."""


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
        super().__init__(message, details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class EmbeddingException(ExternalServiceException):
    """Exception for embedding generation failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Embedding Service", message, details)


class VectorStoreException(ExternalServiceException):
    """Exception for vector store failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Vector Store", message, details)


class RateLimitExceededException(DomainException):
    """Raised when a user has asked the assistant too often."""

    def __init__(
        self,
        user_id: str,
        max_requests: int,
        window_minutes: int
    ):
        self.user_id = user_id
        self.max_requests = max_requests
        self.window_minutes = window_minutes
        super().__init__(
            f"You have exceeded the question limit. Please try again in {window_minutes} minutes.",
            {"user_id": user_id, "max_requests": max_requests, "window_minutes": window_minutes}
        )


class KnowledgeBaseException(DomainException):
    """Knowledge base error carrying a stable error code."""

    EMBEDDING_FAILED = "KB_EMBEDDING_FAILED"
    INVALID_VISIBILITY = "KB_INVALID_VISIBILITY"
    UNAUTHORIZED = "KB_UNAUTHORIZED"
    ENTRY_NOT_FOUND = "KB_ENTRY_NOT_FOUND"
    DUPLICATE_FEEDBACK = "KB_DUPLICATE_FEEDBACK"
    SEARCH_FAILED = "KB_SEARCH_FAILED"
    VALIDATION_FAILED = "KB_VALIDATION_FAILED"
    DATABASE_ERROR = "KB_DATABASE_ERROR"

    def __init__(self, message: str, code: str, details: Optional[dict] = None):
        self.code = code
        super().__init__(message, details)
