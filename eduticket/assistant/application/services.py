"""
Assistant Application Services
===============================

Application services for the RAG chat assistant.

Orchestrates rate limiting, vector search, LLM generation and history
persistence.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from eduticket.config import ChatRole, settings
from eduticket.core import (
    RateLimitExceededException, RepositoryException, ResourceNotFoundException,
    ValidationException, as_uuid
)
from eduticket.assistant.domain import (
    ChatQuery, ChatAnswer, RetrievedDocument, SourceReference, RAGPromptBuilder
)
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Interfaces (Dependency Inversion) ==========

class ILLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def generate_embedding(self, text: str) -> Any:
        """Generate embedding; result exposes .embedding."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> Any:
        """Generate chat completion; result exposes .content."""


class IDocumentSearch(ABC):
    """Interface for similarity search over course documents."""

    @abstractmethod
    async def search(
        self,
        embedding: List[float],
        top_k: int,
        threshold: float
    ) -> List[RetrievedDocument]:
        """Search documents; raises VectorStoreException on failure."""


class IChatRepository(ABC):
    """Interface for chat session and message storage."""

    @abstractmethod
    async def create_session(self, user_id: str, title: Optional[str] = None) -> Any:
        """Create a session."""

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[Any]:
        """Get a session by id."""

    @abstractmethod
    async def list_sessions(self, user_id: str, limit: int = 10) -> List[Any]:
        """List a user's sessions, most recently updated first."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete a session and its messages."""

    @abstractmethod
    async def list_messages(self, session_id: str, limit: Optional[int] = None) -> List[Any]:
        """List messages oldest first."""

    @abstractmethod
    async def add_messages(self, session_id: str, messages: List[dict]) -> None:
        """Append messages (role, content, metadata) in order."""

    @abstractmethod
    async def touch_session(self, session_id: str) -> None:
        """Set the session's updated_at to now."""

    @abstractmethod
    async def record_user_request(self, user_id: str) -> None:
        """Log one accepted question for rate limiting."""

    @abstractmethod
    async def count_user_requests_since(self, user_id: str, since: datetime) -> int:
        """Count questions a user asked since a point in time."""


# ========== Application Services ==========

class ChatSessionService:
    """Service for chat session management."""

    def __init__(self, repository: IChatRepository):
        self._repo = repository

    async def create_session(self, user_id: str, title: Optional[str] = None) -> Any:
        if as_uuid(user_id) is None:
            raise ValidationException("Invalid user id")
        return await self._repo.create_session(user_id, title)

    async def list_sessions(self, user_id: str, limit: int = 10) -> List[Any]:
        return await self._repo.list_sessions(user_id, limit)

    async def get_messages(self, session_id: str) -> List[Any]:
        if await self._repo.get_session(session_id) is None:
            raise ResourceNotFoundException("Chat session", session_id)
        return await self._repo.list_messages(session_id)

    async def delete_session(self, session_id: str) -> None:
        if not await self._repo.delete_session(session_id):
            raise ResourceNotFoundException("Chat session", session_id)
        logger.info("Chat session deleted", extra={"session_id": session_id})


class RAGAssistantService:
    """
    Service for RAG-based answers to student questions.

    Orchestrates vector search and LLM generation.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        document_search: IDocumentSearch,
        chat_repository: IChatRepository
    ):
        self._llm = llm_client
        self._search = document_search
        self._repo = chat_repository

    async def chat(self, query: ChatQuery) -> ChatAnswer:
        """
        Answer a question from the document corpus.

        Raises:
            RateLimitExceededException: If the user asked too often
            VectorStoreException: If the document search fails
            EmbeddingException, LLMException: If the AI service fails
        """
        start_time = time.perf_counter()

        if query.user_id:
            await self._check_rate_limit(query.user_id)

        embedding = await self._llm.generate_embedding(query.text)

        documents = await self._search.search(
            embedding.embedding,
            top_k=settings.rag_match_count,
            threshold=settings.rag_match_threshold
        )
        has_context = len(documents) > 0

        context = RAGPromptBuilder.build_context(documents)
        history = await self._load_history(query.session_id) if query.session_id else []

        messages = [
            {"role": "system", "content": RAGPromptBuilder.build_system_prompt(
                context, settings.institution_name
            )},
            *history,
            {"role": "user", "content": query.text}
        ]

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=0.3,
            max_tokens=settings.llm_max_tokens,
            operation="rag",
            top_p=0.8
        )

        sources = [SourceReference(title=d.title, similarity=d.similarity) for d in documents]

        if query.persists_history:
            await self._save_turn(query, response.content, sources, has_context)

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            "RAG answer generated",
            extra={
                "sources_used": len(sources),
                "has_context": has_context,
                "history_messages": len(history),
                "latency_ms": latency_ms
            }
        )

        return ChatAnswer(
            response=response.content,
            sources=sources,
            has_context=has_context,
            latency_ms=latency_ms
        )

    async def _check_rate_limit(self, user_id: str) -> None:
        """
        Count the user's questions in the rolling window, then log this
        one. Storage failures are logged and never block the question.
        """
        since = datetime.now(timezone.utc) - timedelta(minutes=settings.rate_limit_window_minutes)

        try:
            count = await self._repo.count_user_requests_since(user_id, since)
        except RepositoryException as e:
            logger.error("Rate limit check failed", extra={"user_id": user_id, "error": e.message})
            return

        if count >= settings.rate_limit_max_requests:
            logger.warning("Rate limit exceeded", extra={"user_id": user_id, "count": count})
            raise RateLimitExceededException(
                user_id, settings.rate_limit_max_requests, settings.rate_limit_window_minutes
            )

        try:
            await self._repo.record_user_request(user_id)
        except RepositoryException as e:
            logger.error("Failed to record assistant request", extra={"user_id": user_id, "error": e.message})

    async def _load_history(self, session_id: str) -> List[dict]:
        messages = await self._repo.list_messages(session_id, limit=settings.rag_history_limit)
        return [{"role": m.role, "content": m.content} for m in messages]

    async def _save_turn(
        self,
        query: ChatQuery,
        answer: str,
        sources: List[SourceReference],
        has_context: bool
    ) -> None:
        turn = [
            {"role": ChatRole.USER, "content": query.text, "metadata": {}},
            {
                "role": ChatRole.ASSISTANT,
                "content": answer,
                "metadata": {
                    "sources": [{"title": s.title, "similarity": s.similarity} for s in sources],
                    "has_context": has_context
                }
            }
        ]

        try:
            await self._repo.add_messages(query.session_id, turn)
            await self._repo.touch_session(query.session_id)
        except RepositoryException as e:
            logger.error(
                "Failed to save chat messages",
                extra={"session_id": query.session_id, "error": e.message}
            )
