"""
Knowledge Infrastructure Layer
===============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Knowledge entries, suggestions and feedback
- External: LLM, vector index and ticket adapters
"""

from eduticket.knowledge.infrastructure.models import (
    KnowledgeEntryModel,
    KnowledgeSuggestionModel,
    KnowledgeFeedbackModel,
)
from eduticket.knowledge.infrastructure.repositories import (
    SQLAlchemyKnowledgeRepository,
    SQLAlchemySuggestionRepository,
)
from eduticket.knowledge.infrastructure.external import (
    LLMClientAdapter,
    MilvusKnowledgeIndex,
    DocumentHitSearchAdapter,
    TicketLookupAdapter,
)

__all__ = [
    "KnowledgeEntryModel",
    "KnowledgeSuggestionModel",
    "KnowledgeFeedbackModel",
    "SQLAlchemyKnowledgeRepository",
    "SQLAlchemySuggestionRepository",
    "LLMClientAdapter",
    "MilvusKnowledgeIndex",
    "DocumentHitSearchAdapter",
    "TicketLookupAdapter",
]
