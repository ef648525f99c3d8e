"""
Knowledge Application Layer
============================

Application layer for the instructor knowledge base.

Contains:
- Services: KnowledgeEntryService, AnswerSynthesizer, TicketAutoResponseService
- DTOs: Request/Response models for API serialization
"""

from eduticket.knowledge.application.dto import (
    KnowledgeEntryCreateRequest,
    KnowledgeEntryUpdateRequest,
    StatisticsUpdateRequest,
    KnowledgeEntryResponse,
    KnowledgeEntryListResponse,
    SuggestedAnswerResponse,
    SuggestionsResponse,
    SuggestionRatingRequest,
    ActionResult,
)
from eduticket.knowledge.application.services import (
    KnowledgeEntryService,
    AnswerSynthesizer,
    TicketAutoResponseService,
    ILLMClient,
    IKnowledgeRepository,
    ISuggestionRepository,
    IKnowledgeIndex,
    IDocumentSearch,
    ITicketLookup,
)

__all__ = [
    "KnowledgeEntryCreateRequest",
    "KnowledgeEntryUpdateRequest",
    "StatisticsUpdateRequest",
    "KnowledgeEntryResponse",
    "KnowledgeEntryListResponse",
    "SuggestedAnswerResponse",
    "SuggestionsResponse",
    "SuggestionRatingRequest",
    "ActionResult",
    "KnowledgeEntryService",
    "AnswerSynthesizer",
    "TicketAutoResponseService",
    "ILLMClient",
    "IKnowledgeRepository",
    "ISuggestionRepository",
    "IKnowledgeIndex",
    "IDocumentSearch",
    "ITicketLookup",
]
