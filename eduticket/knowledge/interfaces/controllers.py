"""
Knowledge Controllers (API Routes)
===================================

FastAPI routes for the instructor knowledge base and for suggested
answers on tickets.

Knowledge base errors are rendered by the shared exception handler with
their KB_* code in the body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduticket.config import settings
from eduticket.infrastructure.database import get_session
from eduticket.knowledge.application import (
    KnowledgeEntryService, TicketAutoResponseService, ILLMClient,
    KnowledgeEntryCreateRequest, KnowledgeEntryUpdateRequest, StatisticsUpdateRequest,
    KnowledgeEntryResponse, KnowledgeEntryListResponse,
    SuggestedAnswerResponse, SuggestionsResponse, SuggestionRatingRequest, ActionResult
)
from eduticket.knowledge.infrastructure import (
    SQLAlchemyKnowledgeRepository, SQLAlchemySuggestionRepository,
    LLMClientAdapter, MilvusKnowledgeIndex, DocumentHitSearchAdapter, TicketLookupAdapter
)
from eduticket.tickets.infrastructure import SQLAlchemyTicketRepository
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/knowledge", tags=["Knowledge Base"])


# ========== Example payloads for Swagger ==========

ENTRY_CREATE_EXAMPLE = {
    "instructor_id": "6f1c2d3e-4b5a-4c7d-8e9f-0a1b2c3d4e5f",
    "question_text": "How do I request an extension for an assignment?",
    "answer_text": "Email the instructor at least 48 hours before the deadline and explain the reason.",
    "tags": ["assignments", "deadlines"],
    "visibility": "course_specific",
    "course_code": "CS101"
}

SUGGESTIONS_RESPONSE_EXAMPLE = {
    "success": True,
    "suggestions": [
        {
            "id": "2a7d1c9e-1f3b-4d5e-8a6b-7c8d9e0f1a2b",
            "source": "knowledge_base",
            "question_text": "How do I request an extension for an assignment?",
            "answer_text": "Email the instructor at least 48 hours before the deadline...",
            "similarity_score": 0.8912,
            "confidence": "high",
            "metadata": {"course_code": "CS101", "tags": ["assignments"]}
        }
    ],
    "error": None
}


# ========== Dependencies ==========

def get_llm_adapter() -> Optional[ILLMClient]:
    if not settings.llm_configured:
        return None
    return LLMClientAdapter()


def get_knowledge_index(request: Request) -> Optional[MilvusKnowledgeIndex]:
    """Knowledge index over app.state.knowledge_store, if that store is up."""
    store = getattr(request.app.state, "knowledge_store", None)
    return MilvusKnowledgeIndex(store) if store is not None else None


def get_entry_service(
    db: AsyncSession = Depends(get_session),
    llm: Optional[ILLMClient] = Depends(get_llm_adapter),
    index: Optional[MilvusKnowledgeIndex] = Depends(get_knowledge_index)
) -> KnowledgeEntryService:
    return KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db), llm, index)


def get_auto_response_service(
    request: Request,
    db: AsyncSession = Depends(get_session),
    llm: Optional[ILLMClient] = Depends(get_llm_adapter),
    index: Optional[MilvusKnowledgeIndex] = Depends(get_knowledge_index)
) -> TicketAutoResponseService:
    if llm is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service not configured"
        )

    return TicketAutoResponseService(
        llm_client=llm,
        knowledge_repository=SQLAlchemyKnowledgeRepository(db),
        suggestion_repository=SQLAlchemySuggestionRepository(db),
        document_search=DocumentHitSearchAdapter(getattr(request.app.state, "documents_store", None)),
        index=index,
        tickets=TicketLookupAdapter(SQLAlchemyTicketRepository(db))
    )


def get_suggestion_service(db: AsyncSession = Depends(get_session)) -> TicketAutoResponseService:
    """Storage-only service for endpoints that never call the LLM."""
    return TicketAutoResponseService(
        llm_client=None,
        knowledge_repository=SQLAlchemyKnowledgeRepository(db),
        suggestion_repository=SQLAlchemySuggestionRepository(db),
        document_search=DocumentHitSearchAdapter(None)
    )


# ========== Knowledge entries ==========

@router.post(
    "/entries",
    response_model=KnowledgeEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a knowledge entry",
    description="""
    Save an instructor's question and answer to the knowledge base.

    The question is embedded and indexed so that similar tickets get it
    as a suggested answer. `course_specific` entries need a `course_code`
    and are only suggested for tickets of that course.
    """,
    responses={
        422: {"description": "KB_VALIDATION_FAILED or KB_INVALID_VISIBILITY"},
        502: {"description": "KB_EMBEDDING_FAILED"}
    }
)
async def create_entry(
    request: Request,
    payload: KnowledgeEntryCreateRequest,
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    entry = await service.create_entry(payload.to_domain())

    logger.info("Knowledge entry saved", extra={"correlation_id": correlation_id, "entry_id": str(entry.id)})
    return KnowledgeEntryResponse.from_model(entry)


@router.get("/entries", response_model=KnowledgeEntryListResponse, summary="List an instructor's entries")
async def list_entries(
    instructor_id: str = Query(...),
    course_code: Optional[str] = Query(None),
    visibility: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Substring of question or answer"),
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    entries = await service.list_entries(instructor_id, course_code, visibility, search)
    return KnowledgeEntryListResponse(
        entries=[KnowledgeEntryResponse.from_model(e) for e in entries],
        count=len(entries)
    )


@router.get("/entries/{entry_id}", response_model=KnowledgeEntryResponse, summary="Get an entry version")
async def get_entry(
    entry_id: str,
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    return KnowledgeEntryResponse.from_model(await service.get_entry(entry_id))


@router.put(
    "/entries/{entry_id}",
    response_model=KnowledgeEntryResponse,
    summary="Update an entry",
    description="Creates a new version; the previous version stays readable in the history.",
    responses={403: {"description": "KB_UNAUTHORIZED"}, 404: {"description": "KB_ENTRY_NOT_FOUND"}}
)
async def update_entry(
    entry_id: str,
    payload: KnowledgeEntryUpdateRequest,
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    entry = await service.update_entry(entry_id, payload.instructor_id, payload.to_domain())
    return KnowledgeEntryResponse.from_model(entry)


@router.delete(
    "/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an entry and its history"
)
async def delete_entry(
    entry_id: str,
    instructor_id: str = Query(...),
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    await service.delete_entry(entry_id, instructor_id)


@router.get(
    "/entries/{entry_id}/versions",
    response_model=KnowledgeEntryListResponse,
    summary="Version history, newest first"
)
async def get_version_history(
    entry_id: str,
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    versions = await service.get_version_history(entry_id)
    return KnowledgeEntryListResponse(
        entries=[KnowledgeEntryResponse.from_model(v) for v in versions],
        count=len(versions)
    )


@router.post("/entries/{entry_id}/statistics", response_model=ActionResult, summary="Bump entry counters")
async def update_statistics(
    entry_id: str,
    payload: StatisticsUpdateRequest,
    service: KnowledgeEntryService = Depends(get_entry_service)
):
    await service.update_statistics(entry_id, payload.to_domain())
    return ActionResult(success=True)


# ========== Suggested answers ==========

@router.post(
    "/suggestions/{ticket_id}",
    response_model=SuggestionsResponse,
    summary="Suggest answers for a ticket",
    description="""
    Search the knowledge base and the course documents with the ticket's
    title and description. At most three suggestions are returned, most
    similar first. Knowledge base matches are saved for the ticket.

    Failures are reported in the body with `success = false`.
    """,
    responses={
        200: {"content": {"application/json": {"example": SUGGESTIONS_RESPONSE_EXAMPLE}}},
        503: {"description": "AI service not configured"}
    }
)
async def suggest_answers(
    request: Request,
    ticket_id: str,
    service: TicketAutoResponseService = Depends(get_auto_response_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    result = await service.suggest_for_ticket(ticket_id)

    logger.info(
        "Suggestion request completed",
        extra={"correlation_id": correlation_id, "ticket_id": ticket_id, "success": result.success}
    )
    return SuggestionsResponse(
        success=result.success,
        suggestions=[SuggestedAnswerResponse.from_domain(s) for s in result.suggestions],
        error=result.error
    )


@router.get("/suggestions/{ticket_id}", response_model=SuggestionsResponse, summary="Saved suggestions for a ticket")
async def get_saved_suggestions(
    ticket_id: str,
    service: TicketAutoResponseService = Depends(get_suggestion_service)
):
    suggestions = await service.get_saved_suggestions(ticket_id)
    return SuggestionsResponse(
        success=True,
        suggestions=[SuggestedAnswerResponse.from_domain(s) for s in suggestions]
    )


@router.post(
    "/suggestions/{ticket_id}/{entry_id}/viewed",
    response_model=ActionResult,
    summary="Mark a suggestion as viewed"
)
async def mark_viewed(
    ticket_id: str,
    entry_id: str,
    service: TicketAutoResponseService = Depends(get_suggestion_service)
):
    return ActionResult(success=await service.mark_suggestion_viewed(ticket_id, entry_id))


@router.post(
    "/suggestions/{ticket_id}/{entry_id}/rate",
    response_model=ActionResult,
    summary="Rate a suggestion",
    responses={409: {"description": "KB_DUPLICATE_FEEDBACK"}, 404: {"description": "KB_ENTRY_NOT_FOUND"}}
)
async def rate_suggestion(
    ticket_id: str,
    entry_id: str,
    payload: SuggestionRatingRequest,
    service: TicketAutoResponseService = Depends(get_suggestion_service)
):
    await service.rate_suggestion(ticket_id, entry_id, payload.is_helpful, payload.student_id)
    return ActionResult(success=True)


# Export router for inclusion in main app
knowledge_router = router
