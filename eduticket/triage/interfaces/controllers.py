"""
Triage Controllers (API Routes)
================================

FastAPI routes for AI ticket triage.

Error bodies always carry a fallback priority so callers can still
create the ticket when triage fails.
"""

from datetime import datetime, timezone
from json import JSONDecodeError
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from eduticket.config import settings
from eduticket.core import ValidationException, LLMException
from eduticket.triage.application import TriageService, TriageResponse, TriageErrorResponse
from eduticket.triage.domain import TriageRequest
from eduticket.triage.infrastructure import LLMClientAdapter
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["AI Triage"])


# ========== Example payloads for Swagger ==========

TRIAGE_REQUEST_EXAMPLE = {
    "title": "Cannot upload assignment 3",
    "description": "The submission page shows an error when I upload my PDF before the deadline.",
    "type": "bug"
}

TRIAGE_RESPONSE_EXAMPLE = {
    "suggested_type": "submission",
    "suggested_priority": "high",
    "processed_at": "2025-01-15T10:30:00Z"
}


# ========== Dependencies ==========

def get_triage_service() -> Optional[TriageService]:
    """Get triage service, or None when no LLM is configured."""
    if not settings.llm_configured:
        return None
    return TriageService(LLMClientAdapter())


def _error(status_code: int, error: str, details: Optional[str] = None,
           processed_at: Optional[datetime] = None) -> JSONResponse:
    body = TriageErrorResponse(error=error, details=details, processed_at=processed_at)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True)
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TriageResponse,
    summary="Suggest ticket type and priority",
    description="""
    Ask the LLM for a ticket type and priority.

    **Types**: bug, feature, question, task, grading, report, config,
    assignment, exam, submission, technical, academic

    **Priorities**: low, medium, high, critical

    Every error response includes `"suggested_priority": "medium"`.
    """,
    responses={
        200: {
            "description": "Suggestion generated",
            "content": {"application/json": {"example": TRIAGE_RESPONSE_EXAMPLE}}
        },
        400: {"description": "Invalid input"},
        500: {"description": "AI service not configured or unavailable"}
    }
)
async def triage_ticket(
    request: Request,
    service: Optional[TriageService] = Depends(get_triage_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        payload = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        payload = None

    try:
        triage_request = TriageRequest.from_payload(payload)
    except ValidationException as e:
        logger.info(
            "Triage input rejected",
            extra={"correlation_id": correlation_id, "reason": e.message}
        )
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid input", e.message)

    if service is None:
        logger.error("Triage requested but no LLM API key is configured")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "AI service configuration error")

    try:
        suggestion = await service.suggest(triage_request)
    except LLMException as e:
        logger.error(
            "AI triage failed",
            extra={"correlation_id": correlation_id, "error": e.message}
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "AI service temporarily unavailable",
            e.message if settings.environment == "development" else None,
            datetime.now(timezone.utc)
        )

    return TriageResponse.from_domain(suggestion)


# Export router for inclusion in main app
triage_router = router
