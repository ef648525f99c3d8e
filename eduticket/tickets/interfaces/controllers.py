"""
Tickets Controllers (API Routes)
=================================

FastAPI routes for profiles, tickets and comments.

Controllers are thin - they delegate to application services. Application
exceptions are rendered by the shared exception handler.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduticket.config import settings
from eduticket.core import ApplicationException
from eduticket.infrastructure.database import get_session
from eduticket.tickets.application import (
    ProfileService, TicketService, CommentService,
    ProfileCreateRequest, ProfileResponse,
    TicketCreateRequest, TicketResponse, TicketListResponse,
    StatusUpdateRequest, AssigneeUpdateRequest, OperationResult,
    CommentCreateRequest, CommentUpdateRequest, CommentResponse,
    TicketStatsResponse, ITriageSuggester
)
from eduticket.tickets.domain import TicketDraft
from eduticket.tickets.infrastructure import (
    SQLAlchemyProfileRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyCommentRepository,
    TriageSuggesterAdapter
)
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

profiles_router = APIRouter(prefix="/profiles", tags=["Profiles"])
router = APIRouter(prefix="/tickets", tags=["Tickets"])
comments_router = APIRouter(prefix="/comments", tags=["Comments"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "creator_id": "123e4567-e89b-12d3-a456-426614174000",
    "title": "Cannot upload assignment 3",
    "description": "The submission page shows an error when I upload my PDF.",
    "type": "bug",
    "priority": "high",
    "course_code": "CS101"
}

STATS_RESPONSE_EXAMPLE = {
    "total": 42,
    "active": 17,
    "by_status": {"open": 12, "in_progress": 5, "resolved": 20, "closed": 5},
    "by_priority": {"low": 8, "medium": 20, "high": 10, "critical": 4},
    "by_type": {"bug": 15, "feature": 3, "question": 20, "task": 4},
    "ai_triaged": 40,
    "ai_priority_match_rate": 0.78
}


# ========== Dependencies ==========

def get_triage_suggester() -> Optional[ITriageSuggester]:
    """Triage adapter, or None when no LLM is configured."""
    if not settings.llm_configured:
        return None
    return TriageSuggesterAdapter()


def get_profile_service(db: AsyncSession = Depends(get_session)) -> ProfileService:
    return ProfileService(SQLAlchemyProfileRepository(db))


def get_ticket_service(
    db: AsyncSession = Depends(get_session),
    triage: Optional[ITriageSuggester] = Depends(get_triage_suggester)
) -> TicketService:
    return TicketService(
        SQLAlchemyTicketRepository(db),
        SQLAlchemyProfileRepository(db),
        triage
    )


def get_comment_service(db: AsyncSession = Depends(get_session)) -> CommentService:
    return CommentService(
        SQLAlchemyCommentRepository(db),
        SQLAlchemyTicketRepository(db),
        SQLAlchemyProfileRepository(db)
    )


# ========== Profiles ==========

@profiles_router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user profile"
)
async def create_profile(
    payload: ProfileCreateRequest,
    service: ProfileService = Depends(get_profile_service)
):
    profile = await service.create_profile(
        email=payload.email,
        full_name=payload.full_name,
        role=payload.role,
        profile_id=payload.id
    )
    return ProfileResponse.from_model(profile)


@profiles_router.get("/{profile_id}", response_model=ProfileResponse, summary="Get a profile")
async def get_profile(
    profile_id: str,
    service: ProfileService = Depends(get_profile_service)
):
    return ProfileResponse.from_model(await service.get_profile(profile_id))


# ========== Tickets ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Create a support ticket.

    The AI triage module is asked for a priority first and its answer is
    stored as `ai_suggested_priority`. If triage fails the ticket is still
    created with `ai_suggested_priority = null`.

    Validation errors are returned together, joined with ", ".
    """,
    responses={
        201: {"description": "Ticket created"},
        404: {"description": "Creator profile not found"},
        422: {"description": "Validation failed"}
    }
)
async def create_ticket(
    request: Request,
    payload: TicketCreateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    draft = TicketDraft(
        title=payload.title,
        description=payload.description,
        type=payload.type,
        priority=payload.priority,
        course_code=payload.course_code,
        class_name=payload.class_name,
        project_group=payload.project_group
    )

    ticket = await service.create_ticket(draft, payload.creator_id)

    logger.info(
        "Ticket created via API",
        extra={"correlation_id": correlation_id, "ticket_id": str(ticket.id)}
    )
    return TicketResponse.from_model(ticket)


@router.get(
    "/stats",
    response_model=TicketStatsResponse,
    summary="Get ticket statistics",
    responses={
        200: {
            "description": "Statistics",
            "content": {"application/json": {"example": STATS_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_ticket_stats(
    creator_id: Optional[str] = Query(None, description="Only count this student's tickets"),
    service: TicketService = Depends(get_ticket_service)
):
    stats = await service.get_stats(creator_id)
    return TicketStatsResponse(
        total=stats.total,
        active=stats.active,
        by_status=stats.by_status,
        by_priority=stats.by_priority,
        by_type=stats.by_type,
        ai_triaged=stats.ai_triaged,
        ai_priority_match_rate=stats.ai_priority_match_rate
    )


@router.get("", response_model=TicketListResponse, summary="List tickets, newest first")
async def list_tickets(
    creator_id: Optional[str] = Query(None),
    assignee_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    service: TicketService = Depends(get_ticket_service)
):
    tickets = await service.list_tickets(creator_id, assignee_id, status_filter, limit)
    return TicketListResponse(
        tickets=[TicketResponse.from_model(t) for t in tickets],
        count=len(tickets)
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket with creator and assignee",
    responses={404: {"description": "Ticket not found"}}
)
async def get_ticket(
    ticket_id: str,
    service: TicketService = Depends(get_ticket_service)
):
    ticket, creator, assignee = await service.get_ticket(ticket_id)
    return TicketResponse.from_model(ticket, creator, assignee)


@router.patch("/{ticket_id}/status", response_model=OperationResult, summary="Change ticket status")
async def update_ticket_status(
    ticket_id: str,
    payload: StatusUpdateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        await service.update_status(ticket_id, payload.status)
    except ApplicationException as e:
        return OperationResult(success=False, error=e.message)
    return OperationResult(success=True)


@router.patch("/{ticket_id}/assignee", response_model=OperationResult, summary="Assign or unassign a ticket")
async def update_ticket_assignee(
    ticket_id: str,
    payload: AssigneeUpdateRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        await service.update_assignee(ticket_id, payload.assignee_id)
    except ApplicationException as e:
        return OperationResult(success=False, error=e.message)
    return OperationResult(success=True)


# ========== Comments ==========

@router.get("/{ticket_id}/comments", response_model=List[CommentResponse], summary="List comments, oldest first")
async def list_comments(
    ticket_id: str,
    service: CommentService = Depends(get_comment_service)
):
    pairs = await service.list_comments(ticket_id)
    return [CommentResponse.from_model(comment, author) for comment, author in pairs]


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment"
)
async def create_comment(
    ticket_id: str,
    payload: CommentCreateRequest,
    service: CommentService = Depends(get_comment_service)
):
    comment = await service.create_comment(ticket_id, payload.user_id, payload.content)
    return CommentResponse.from_model(comment)


@comments_router.patch("/{comment_id}", response_model=CommentResponse, summary="Edit a comment")
async def update_comment(
    comment_id: str,
    payload: CommentUpdateRequest,
    service: CommentService = Depends(get_comment_service)
):
    return CommentResponse.from_model(await service.update_comment(comment_id, payload.content))


@comments_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a comment")
async def delete_comment(
    comment_id: str,
    service: CommentService = Depends(get_comment_service)
):
    await service.delete_comment(comment_id)


# Export routers for inclusion in main app
tickets_router = router
