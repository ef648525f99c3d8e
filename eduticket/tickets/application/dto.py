"""
Tickets Application DTOs
=========================

Data Transfer Objects for the tickets API layer.

Ticket creation fields are deliberately loose: TicketDraft.validate
reports every problem at once instead of pydantic stopping at the first.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal
from datetime import datetime


# ========== Type Aliases for Literals ==========
RoleStr = Literal["student", "lead", "instructor"]
StatusStr = Literal["open", "in_progress", "resolved", "closed"]


# ========== Request DTOs ==========

class ProfileCreateRequest(BaseModel):
    """Request model for registering a profile."""
    id: Optional[str] = Field(None, description="Identity provider user id (generated when omitted)")
    email: str = Field(..., min_length=3, max_length=255)
    full_name: Optional[str] = Field(None, max_length=255)
    role: RoleStr = Field(default="student")


class TicketCreateRequest(BaseModel):
    """Request model for creating a ticket."""
    creator_id: str = Field(..., description="Profile id of the student opening the ticket")
    title: str = ""
    description: str = ""
    type: Optional[str] = Field(None, description="bug, feature, question or task")
    priority: Optional[str] = Field(None, description="low, medium, high or critical")
    course_code: Optional[str] = Field(None, max_length=50)
    class_name: Optional[str] = Field(None, max_length=255)
    project_group: Optional[str] = Field(None, max_length=255)


class StatusUpdateRequest(BaseModel):
    status: str


class AssigneeUpdateRequest(BaseModel):
    assignee_id: Optional[str] = None


class CommentCreateRequest(BaseModel):
    user_id: str
    content: str


class CommentUpdateRequest(BaseModel):
    content: str


# ========== Response DTOs ==========

class UserSummary(BaseModel):
    """Short profile embedded in ticket and comment responses."""
    id: str
    email: str
    full_name: Optional[str] = None
    role: str

    @classmethod
    def from_model(cls, model: Any) -> Optional["UserSummary"]:
        if model is None:
            return None
        return cls(id=str(model.id), email=model.email, full_name=model.full_name, role=model.role)


class ProfileResponse(UserSummary):
    created_at: datetime

    @classmethod
    def from_model(cls, model: Any) -> "ProfileResponse":
        return cls(
            id=str(model.id),
            email=model.email,
            full_name=model.full_name,
            role=model.role,
            created_at=model.created_at
        )


class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: str
    title: str
    description: str
    type: str
    priority: str
    status: StatusStr
    ai_suggested_priority: Optional[str] = None
    course_code: Optional[str] = None
    class_name: Optional[str] = None
    project_group: Optional[str] = None
    creator_id: str
    assignee_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    creator: Optional[UserSummary] = None
    assignee: Optional[UserSummary] = None

    @classmethod
    def from_model(
        cls,
        model: Any,
        creator: Any = None,
        assignee: Any = None
    ) -> "TicketResponse":
        return cls(
            id=str(model.id),
            title=model.title,
            description=model.description,
            type=model.type,
            priority=model.priority,
            status=model.status,
            ai_suggested_priority=model.ai_suggested_priority,
            course_code=model.course_code,
            class_name=model.class_name,
            project_group=model.project_group,
            creator_id=str(model.creator_id),
            assignee_id=str(model.assignee_id) if model.assignee_id else None,
            created_at=model.created_at,
            updated_at=model.updated_at,
            creator=UserSummary.from_model(creator),
            assignee=UserSummary.from_model(assignee)
        )


class OperationResult(BaseModel):
    """Outcome of an update that reports failure in the body."""
    success: bool
    error: Optional[str] = None


class CommentResponse(BaseModel):
    id: str
    ticket_id: str
    user_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    author: Optional[UserSummary] = None

    @classmethod
    def from_model(cls, model: Any, author: Any = None) -> "CommentResponse":
        return cls(
            id=str(model.id),
            ticket_id=str(model.ticket_id),
            user_id=str(model.user_id),
            content=model.content,
            created_at=model.created_at,
            updated_at=model.updated_at,
            author=UserSummary.from_model(author)
        )


class TicketStatsResponse(BaseModel):
    """Aggregate ticket statistics."""
    total: int = Field(..., description="Number of tickets")
    active: int = Field(..., description="Open plus in-progress tickets")
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_type: Dict[str, int]
    ai_triaged: int = Field(..., description="Tickets that received an AI priority suggestion")
    ai_priority_match_rate: Optional[float] = Field(
        None, description="Share of triaged tickets whose final priority matched the suggestion"
    )


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    count: int
