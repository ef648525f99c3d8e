"""
Assistant Infrastructure Layer
===============================

Contains:
- Models: Chat session, message and request log ORM models
- Repositories: SQLAlchemyChatRepository
- External: LLM and document search adapters
"""

from eduticket.assistant.infrastructure.models import (
    ChatSessionModel, ChatMessageModel, AssistantRequestModel
)
from eduticket.assistant.infrastructure.repositories import SQLAlchemyChatRepository
from eduticket.assistant.infrastructure.external import LLMClientAdapter, DocumentSearchAdapter

__all__ = [
    "ChatSessionModel",
    "ChatMessageModel",
    "AssistantRequestModel",
    "SQLAlchemyChatRepository",
    "LLMClientAdapter",
    "DocumentSearchAdapter",
]
