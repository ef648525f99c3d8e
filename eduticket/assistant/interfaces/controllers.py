"""
Assistant Controllers (API Routes)
===================================

FastAPI routes for the RAG chat assistant and its sessions.

The chat endpoint renders its own error bodies ({"error", ...}) because
the chat widget shows them verbatim.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eduticket.config import settings
from eduticket.core import (
    ApplicationException, RateLimitExceededException,
    ValidationException, VectorStoreException
)
from eduticket.infrastructure.database import get_session
from eduticket.assistant.application import (
    RAGAssistantService, ChatSessionService,
    ChatRequest, ChatResponse,
    SessionCreateRequest, SessionCreatedResponse,
    SessionResponse, MessageResponse
)
from eduticket.assistant.domain import ChatQuery
from eduticket.assistant.infrastructure import (
    SQLAlchemyChatRepository, LLMClientAdapter, DocumentSearchAdapter
)
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/assistant", tags=["AI Assistant"])

GENERIC_ERROR = "Something went wrong. Please try again later."
RATE_LIMIT_CODE = "RATE_LIMIT_EXCEEDED"


# ========== Example payloads for Swagger ==========

CHAT_REQUEST_EXAMPLE = {
    "query": "How do I submit my final project?",
    "session_id": "9b2f6c1e-8a43-4a55-9d1f-2f0c4b0f3e11",
    "user_id": "123e4567-e89b-12d3-a456-426614174000"
}

CHAT_RESPONSE_EXAMPLE = {
    "response": "Final projects are uploaded on the course page before the deadline [Course Handbook].",
    "sources": [{"title": "Course Handbook", "similarity": 0.82}]
}


# ========== Dependencies ==========

def get_chat_session_service(db: AsyncSession = Depends(get_session)) -> ChatSessionService:
    return ChatSessionService(SQLAlchemyChatRepository(db))


async def get_assistant_service(
    request: Request,
    db: AsyncSession = Depends(get_session)
) -> Optional[RAGAssistantService]:
    """Get the RAG service with the documents vector store from app state."""
    if not settings.llm_configured:
        return None

    vector_store = getattr(request.app.state, "documents_store", None)
    return RAGAssistantService(
        LLMClientAdapter(),
        DocumentSearchAdapter(vector_store),
        SQLAlchemyChatRepository(db)
    )


# ========== Route Handlers ==========

@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Ask the learning assistant",
    description="""
    Answer a question from the ingested course documents.

    1. Rate limit: at most 20 questions per user per rolling hour
    2. Embed the query and search the documents collection (similarity >= 0.6, top 5)
    3. Generate an answer grounded in the retrieved context and recent session history
    4. Store the question and answer when both `session_id` and `user_id` are given
    """,
    responses={
        200: {
            "description": "Answer generated",
            "content": {"application/json": {"example": CHAT_RESPONSE_EXAMPLE}}
        },
        400: {"description": "Query is required"},
        429: {"description": "Question limit exceeded"},
        500: {"description": "Search or generation failed"}
    }
)
async def chat(
    request: Request,
    payload: ChatRequest,
    service: Optional[RAGAssistantService] = Depends(get_assistant_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        query = ChatQuery.from_raw(
            payload.query,
            session_id=payload.session_id,
            user_id=payload.user_id,
            max_length=settings.rag_max_query_length
        )
    except ValidationException as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.message})

    if service is None:
        logger.error("Assistant requested but no LLM API key is configured")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERIC_ERROR, "details": "AI service configuration error"}
        )

    logger.info(
        "Assistant question received",
        extra={
            "correlation_id": correlation_id,
            "query_preview": query.text[:100],
            "has_session": query.session_id is not None
        }
    )

    try:
        answer = await service.chat(query)
    except RateLimitExceededException as e:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": e.message, "code": RATE_LIMIT_CODE}
        )
    except VectorStoreException as e:
        logger.error(
            "Document search failed",
            extra={"correlation_id": correlation_id, "error": e.message}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to search documents"}
        )
    except ApplicationException as e:
        logger.error(
            "Assistant answer failed",
            extra={"correlation_id": correlation_id, "error": e.message}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERIC_ERROR, "details": e.message}
        )

    return ChatResponse.from_domain(answer)


@router.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a chat session"
)
async def create_session(
    payload: SessionCreateRequest,
    service: ChatSessionService = Depends(get_chat_session_service)
):
    chat_session = await service.create_session(payload.user_id, payload.title)
    return SessionCreatedResponse(id=str(chat_session.id))


@router.get("/sessions", response_model=List[SessionResponse], summary="List a user's sessions")
async def list_sessions(
    user_id: str = Query(...),
    limit: int = Query(10, ge=1, le=100),
    service: ChatSessionService = Depends(get_chat_session_service)
):
    sessions = await service.list_sessions(user_id, limit)
    return [SessionResponse.from_model(s) for s in sessions]


@router.get(
    "/sessions/{session_id}/messages",
    response_model=List[MessageResponse],
    summary="Get session history, oldest first"
)
async def get_session_messages(
    session_id: str,
    service: ChatSessionService = Depends(get_chat_session_service)
):
    messages = await service.get_messages(session_id)
    return [MessageResponse.from_model(m) for m in messages]


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session and its messages"
)
async def delete_session(
    session_id: str,
    service: ChatSessionService = Depends(get_chat_session_service)
):
    await service.delete_session(session_id)


# Export router for inclusion in main app
assistant_router = router
