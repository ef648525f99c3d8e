"""
Knowledge Application DTOs
===========================

Pydantic models for the knowledge base and suggested-answer API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from eduticket.config import Visibility
from eduticket.knowledge.domain import (
    KnowledgeEntryInput, KnowledgeEntryUpdate, StatisticsUpdate,
    SuggestedAnswer, MAX_QUESTION_LENGTH, MAX_ANSWER_LENGTH
)


class KnowledgeEntryCreateRequest(BaseModel):
    """
    New entry. Length and visibility rules are checked by the service so
    that failures carry a KB_* code.
    """
    instructor_id: str
    question_text: str = Field(..., description=f"Up to {MAX_QUESTION_LENGTH} characters")
    answer_text: str = Field(..., description=f"Up to {MAX_ANSWER_LENGTH} characters")
    tags: List[str] = Field(default_factory=list)
    visibility: str = Field(default=Visibility.PUBLIC, description="public or course_specific")
    course_code: Optional[str] = None
    ticket_id: Optional[str] = Field(None, description="Ticket the answer was written for")

    def to_domain(self) -> KnowledgeEntryInput:
        return KnowledgeEntryInput(
            instructor_id=self.instructor_id,
            question_text=self.question_text,
            answer_text=self.answer_text,
            visibility=self.visibility,
            tags=list(self.tags),
            course_code=self.course_code,
            ticket_id=self.ticket_id
        )


class KnowledgeEntryUpdateRequest(BaseModel):
    instructor_id: str
    question_text: Optional[str] = None
    answer_text: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[str] = None
    course_code: Optional[str] = None

    def to_domain(self) -> KnowledgeEntryUpdate:
        return KnowledgeEntryUpdate(
            question_text=self.question_text,
            answer_text=self.answer_text,
            tags=self.tags,
            visibility=self.visibility,
            course_code=self.course_code
        )


class StatisticsUpdateRequest(BaseModel):
    increment_views: bool = False
    increment_helpful: bool = False
    increment_not_helpful: bool = False

    def to_domain(self) -> StatisticsUpdate:
        return StatisticsUpdate(
            increment_views=self.increment_views,
            increment_helpful=self.increment_helpful,
            increment_not_helpful=self.increment_not_helpful
        )


class KnowledgeEntryResponse(BaseModel):
    id: str
    instructor_id: str
    ticket_id: Optional[str] = None
    question_text: str
    answer_text: str
    tags: List[str]
    visibility: str
    course_code: Optional[str] = None
    view_count: int
    helpful_count: int
    not_helpful_count: int
    version: int
    previous_version_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, model: Any) -> "KnowledgeEntryResponse":
        return cls(
            id=str(model.id),
            instructor_id=str(model.instructor_id),
            ticket_id=str(model.ticket_id) if model.ticket_id else None,
            question_text=model.question_text,
            answer_text=model.answer_text,
            tags=model.tags or [],
            visibility=model.visibility,
            course_code=model.course_code,
            view_count=model.view_count,
            helpful_count=model.helpful_count,
            not_helpful_count=model.not_helpful_count,
            version=model.version,
            previous_version_id=str(model.previous_version_id) if model.previous_version_id else None,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class KnowledgeEntryListResponse(BaseModel):
    entries: List[KnowledgeEntryResponse]
    count: int


class SuggestedAnswerResponse(BaseModel):
    id: str
    source: str = Field(..., description="knowledge_base or rag_documents")
    question_text: str
    answer_text: str
    similarity_score: float
    confidence: str = Field(..., description="high, medium or low")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, suggestion: SuggestedAnswer) -> "SuggestedAnswerResponse":
        return cls(
            id=suggestion.id,
            source=suggestion.source,
            question_text=suggestion.question_text,
            answer_text=suggestion.answer_text,
            similarity_score=round(suggestion.similarity_score, 4),
            confidence=suggestion.confidence,
            metadata=suggestion.metadata
        )


class SuggestionsResponse(BaseModel):
    success: bool
    suggestions: List[SuggestedAnswerResponse] = Field(default_factory=list)
    error: Optional[str] = None


class SuggestionRatingRequest(BaseModel):
    student_id: str
    is_helpful: bool


class ActionResult(BaseModel):
    success: bool
