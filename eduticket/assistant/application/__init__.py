"""
Assistant Application Layer
============================

Contains:
- Services: RAGAssistantService, ChatSessionService
- Interfaces: ILLMClient, IDocumentSearch, IChatRepository
- DTOs: Request/Response models for API serialization
"""

from eduticket.assistant.application.dto import (
    ChatRequest,
    ChatResponse,
    SourceInfo,
    SessionCreateRequest,
    SessionCreatedResponse,
    SessionResponse,
    MessageResponse,
)
from eduticket.assistant.application.services import (
    ILLMClient,
    IDocumentSearch,
    IChatRepository,
    ChatSessionService,
    RAGAssistantService,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "SourceInfo",
    "SessionCreateRequest",
    "SessionCreatedResponse",
    "SessionResponse",
    "MessageResponse",
    "ILLMClient",
    "IDocumentSearch",
    "IChatRepository",
    "ChatSessionService",
    "RAGAssistantService",
]
