"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from eduticket.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    AuthorizationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    EmbeddingException,
    VectorStoreException,
    RateLimitExceededException,
    KnowledgeBaseException,
)
from eduticket.core.ids import as_uuid

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "AuthorizationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "EmbeddingException",
    "VectorStoreException",
    "RateLimitExceededException",
    "KnowledgeBaseException",
    "as_uuid",
]
