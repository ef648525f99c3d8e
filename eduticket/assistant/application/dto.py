"""
Assistant Application DTOs
===========================

Pydantic models for the chat assistant API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from eduticket.assistant.domain import ChatAnswer


class ChatRequest(BaseModel):
    """
    Chat request. query is optional here so that a missing or blank
    query gets the assistant's own 400 body.
    """
    query: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None


class SourceInfo(BaseModel):
    title: str
    similarity: float = Field(..., description="Cosine similarity rounded to 2 decimals")


class ChatResponse(BaseModel):
    response: str
    sources: List[SourceInfo]

    @classmethod
    def from_domain(cls, answer: ChatAnswer) -> "ChatResponse":
        return cls(
            response=answer.response,
            sources=[
                SourceInfo(title=s.title, similarity=s.rounded().similarity)
                for s in answer.sources
            ]
        )


class SessionCreateRequest(BaseModel):
    user_id: str
    title: Optional[str] = Field(None, max_length=255)


class SessionCreatedResponse(BaseModel):
    id: str


class SessionResponse(BaseModel):
    id: str
    user_id: str
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, model: Any) -> "SessionResponse":
        return cls(
            id=str(model.id),
            user_id=str(model.user_id),
            title=model.title,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class MessageResponse(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_model(cls, model: Any) -> "MessageResponse":
        return cls(
            id=str(model.id),
            session_id=str(model.session_id),
            role=model.role,
            content=model.content,
            metadata=model.message_metadata or {},
            created_at=model.created_at
        )
