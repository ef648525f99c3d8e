"""
Assistant Domain Layer
======================

Contains:
- Entities: ChatQuery, RetrievedDocument, SourceReference, ChatAnswer
- Prompt building: RAGPromptBuilder

This layer is framework-agnostic and contains pure business logic.
"""

from eduticket.assistant.domain.entities import (
    ChatQuery,
    RetrievedDocument,
    SourceReference,
    ChatAnswer,
    RAGPromptBuilder,
)

__all__ = [
    "ChatQuery",
    "RetrievedDocument",
    "SourceReference",
    "ChatAnswer",
    "RAGPromptBuilder",
]
