"""
Triage Application DTOs
========================

Pydantic models for triage responses.

Requests are validated by TriageRequest.from_payload so that invalid input
gets the triage-specific 400 body instead of FastAPI's 422.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from eduticket.triage.domain import TriageSuggestion

PriorityStr = Literal["low", "medium", "high", "critical"]


class TriageResponse(BaseModel):
    """Successful triage result."""
    suggested_type: str
    suggested_priority: PriorityStr
    processed_at: datetime

    @classmethod
    def from_domain(cls, suggestion: TriageSuggestion) -> "TriageResponse":
        return cls(
            suggested_type=suggestion.suggested_type,
            suggested_priority=suggestion.suggested_priority,
            processed_at=suggestion.processed_at
        )


class TriageErrorResponse(BaseModel):
    """Error body; always carries a fallback priority."""
    error: str
    details: Optional[str] = None
    suggested_priority: PriorityStr = Field(default="medium")
    processed_at: Optional[datetime] = None
