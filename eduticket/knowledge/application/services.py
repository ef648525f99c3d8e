"""
Knowledge Application Services
===============================

Application services for the instructor knowledge base and for
auto-suggested ticket answers.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions, not concrete implementations
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from eduticket.config import SuggestionSource, settings
from eduticket.core import (
    ApplicationException, KnowledgeBaseException, LLMException,
    VectorStoreException, as_uuid
)
from eduticket.knowledge.domain import (
    KnowledgeEntryInput, KnowledgeEntryUpdate, StatisticsUpdate,
    SuggestedAnswer, AutoResponseResult, AnswerPromptBuilder, DocumentHit,
    check_lengths, check_visibility, normalize_course_code, sanitize_tags,
    calculate_confidence, is_quality_answer, merge_suggestions
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


class IKnowledgeRepository(ABC):
    """Interface for knowledge entry data access."""

    @abstractmethod
    async def get_by_id(self, entry_id: str) -> Optional[Any]:
        """Get entry version by id."""

    @abstractmethod
    async def get_many(self, entry_ids: List[str]) -> Dict[str, Any]:
        """Get entries keyed by id string."""

    @abstractmethod
    async def is_latest(self, entry_id: str) -> bool:
        """True when no newer version points at this entry."""

    @abstractmethod
    async def create(self, data: dict) -> Any:
        """Insert an entry row."""

    @abstractmethod
    async def list_current(
        self,
        instructor_id: str,
        course_code: Optional[str] = None,
        visibility: Optional[str] = None,
        search_term: Optional[str] = None
    ) -> List[Any]:
        """List an instructor's latest entry versions, newest first."""

    @abstractmethod
    async def delete_chain(self, entry_id: str) -> List[str]:
        """Delete an entry and all earlier versions; returns deleted ids."""

    @abstractmethod
    async def increment_counters(
        self,
        entry_id: str,
        views: int = 0,
        helpful: int = 0,
        not_helpful: int = 0
    ) -> bool:
        """Add to the statistics counters; False if the entry does not exist."""


class ISuggestionRepository(ABC):
    """Interface for saved suggestions and student feedback."""

    @abstractmethod
    async def save(self, ticket_id: str, rows: List[dict]) -> None:
        """Store suggestion rows (entry_id, similarity_score, rank_position)."""

    @abstractmethod
    async def mark_viewed(self, ticket_id: str, entry_id: str) -> bool:
        """Flag a suggestion as viewed."""

    @abstractmethod
    async def set_helpful(self, ticket_id: str, entry_id: str, is_helpful: bool) -> bool:
        """Record the student's rating on the suggestion."""

    @abstractmethod
    async def add_feedback(
        self,
        entry_id: str,
        student_id: str,
        ticket_id: Optional[str],
        is_helpful: bool
    ) -> None:
        """Insert a feedback vote; raises KB_DUPLICATE_FEEDBACK on a repeat."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Tuple[Any, Any]]:
        """Get (suggestion, entry) pairs ordered by rank."""


class IKnowledgeIndex(ABC):
    """Interface for the knowledge question embedding index."""

    @abstractmethod
    async def add(
        self,
        entry_id: str,
        question_text: str,
        embedding: List[float],
        visibility: str,
        course_code: Optional[str]
    ) -> None:
        """Index one entry version."""

    @abstractmethod
    async def remove(self, entry_ids: List[str]) -> None:
        """Drop entries from the index."""

    @abstractmethod
    async def search(
        self,
        embedding: List[float],
        top_k: int,
        threshold: float,
        course_code: Optional[str] = None
    ) -> List[Tuple[str, float]]:
        """Find (entry_id, similarity) visible publicly or in the course."""


class IDocumentSearch(ABC):
    """Interface for similarity search over course documents."""

    @abstractmethod
    async def search(self, embedding: List[float], top_k: int, threshold: float) -> List[DocumentHit]:
        """Search documents; raises VectorStoreException on failure."""


class ITicketLookup(ABC):
    """Read access to tickets (title, description, course_code)."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Any]:
        """Get ticket by id."""


# ========== Application Services ==========

class KnowledgeEntryService:
    """
    Service for instructor-managed knowledge entries.

    Every update creates a new version row; only the newest version of a
    chain is kept in the search index.
    """

    def __init__(
        self,
        repository: IKnowledgeRepository,
        llm_client: Optional[ILLMClient],
        index: Optional[IKnowledgeIndex] = None
    ):
        self._repo = repository
        self._llm = llm_client
        self._index = index

    async def create_entry(self, data: KnowledgeEntryInput) -> Any:
        """
        Validate, embed, store and index a new entry.

        Raises:
            KnowledgeBaseException: KB_VALIDATION_FAILED, KB_INVALID_VISIBILITY,
                KB_EMBEDDING_FAILED or KB_DATABASE_ERROR
        """
        data.validate()
        data = data.sanitized()

        if as_uuid(data.instructor_id) is None:
            raise KnowledgeBaseException("Instructor ID is invalid", KnowledgeBaseException.VALIDATION_FAILED)

        embedding = await self._embed(data.question_text)

        entry = await self._repo.create({
            "instructor_id": data.instructor_id,
            "ticket_id": data.ticket_id,
            "question_text": data.question_text,
            "answer_text": data.answer_text,
            "tags": data.tags,
            "question_embedding": embedding,
            "visibility": data.visibility,
            "course_code": data.course_code,
            "view_count": 0,
            "helpful_count": 0,
            "not_helpful_count": 0,
            "version": 1,
            "previous_version_id": None
        })

        await self._index_entry(entry)

        logger.info("Knowledge entry created", extra={"entry_id": str(entry.id), "visibility": data.visibility})
        return entry

    async def update_entry(self, entry_id: str, instructor_id: str, updates: KnowledgeEntryUpdate) -> Any:
        """
        Create a new version of an entry.

        Raises:
            KnowledgeBaseException: KB_ENTRY_NOT_FOUND, KB_UNAUTHORIZED,
                KB_INVALID_VISIBILITY, KB_VALIDATION_FAILED or KB_EMBEDDING_FAILED
        """
        existing = await self._get_owned(entry_id, instructor_id, "update")

        if not await self._repo.is_latest(entry_id):
            raise KnowledgeBaseException(
                "Only the latest version of an entry can be updated",
                KnowledgeBaseException.VALIDATION_FAILED
            )

        visibility = updates.visibility or existing.visibility
        course_code = updates.course_code if updates.course_code is not None else existing.course_code
        check_visibility(visibility, course_code)

        question_text = (updates.question_text or "").strip() or existing.question_text
        answer_text = (updates.answer_text or "").strip() or existing.answer_text
        check_lengths(question_text, answer_text)
        tags = sanitize_tags(updates.tags if updates.tags is not None else existing.tags)

        embedding = existing.question_embedding
        if updates.question_text and updates.question_text.strip() != existing.question_text:
            embedding = await self._embed(question_text)

        new_version = await self._repo.create({
            "instructor_id": str(existing.instructor_id),
            "ticket_id": str(existing.ticket_id) if existing.ticket_id else None,
            "question_text": question_text,
            "answer_text": answer_text,
            "tags": tags,
            "question_embedding": embedding,
            "visibility": visibility,
            "course_code": normalize_course_code(course_code),
            "view_count": existing.view_count,
            "helpful_count": existing.helpful_count,
            "not_helpful_count": existing.not_helpful_count,
            "version": existing.version + 1,
            "previous_version_id": str(existing.id)
        })

        await self._unindex([str(existing.id)])
        await self._index_entry(new_version)

        logger.info(
            "Knowledge entry updated",
            extra={"entry_id": str(new_version.id), "previous_version_id": entry_id, "version": new_version.version}
        )
        return new_version

    async def delete_entry(self, entry_id: str, instructor_id: str) -> None:
        """Delete an entry together with its earlier versions."""
        await self._get_owned(entry_id, instructor_id, "delete")

        deleted_ids = await self._repo.delete_chain(entry_id)
        await self._unindex(deleted_ids)

        logger.info("Knowledge entry deleted", extra={"entry_id": entry_id, "versions": len(deleted_ids)})

    async def get_entry(self, entry_id: str) -> Any:
        entry = await self._repo.get_by_id(entry_id)
        if entry is None:
            raise KnowledgeBaseException("Knowledge entry not found", KnowledgeBaseException.ENTRY_NOT_FOUND)
        return entry

    async def list_entries(
        self,
        instructor_id: str,
        course_code: Optional[str] = None,
        visibility: Optional[str] = None,
        search_term: Optional[str] = None
    ) -> List[Any]:
        return await self._repo.list_current(
            instructor_id,
            course_code=normalize_course_code(course_code),
            visibility=visibility,
            search_term=(search_term or "").strip() or None
        )

    async def get_version_history(self, entry_id: str) -> List[Any]:
        """All versions reachable through previous_version_id, newest first."""
        current = await self.get_entry(entry_id)

        versions = [current]
        seen = {str(current.id)}
        previous_id = current.previous_version_id
        while previous_id and str(previous_id) not in seen:
            previous = await self._repo.get_by_id(str(previous_id))
            if previous is None:
                break
            versions.append(previous)
            seen.add(str(previous.id))
            previous_id = previous.previous_version_id

        return sorted(versions, key=lambda v: v.version, reverse=True)

    async def update_statistics(self, entry_id: str, update: StatisticsUpdate) -> None:
        if update.is_empty:
            return

        found = await self._repo.increment_counters(
            entry_id,
            views=int(update.increment_views),
            helpful=int(update.increment_helpful),
            not_helpful=int(update.increment_not_helpful)
        )
        if not found:
            raise KnowledgeBaseException("Knowledge entry not found", KnowledgeBaseException.ENTRY_NOT_FOUND)

    async def _get_owned(self, entry_id: str, instructor_id: str, action: str) -> Any:
        entry = await self.get_entry(entry_id)
        if str(entry.instructor_id) != str(as_uuid(instructor_id) or instructor_id):
            raise KnowledgeBaseException(
                f"Unauthorized: You can only {action} your own entries",
                KnowledgeBaseException.UNAUTHORIZED
            )
        return entry

    async def _embed(self, text: str) -> List[float]:
        if self._llm is None:
            raise KnowledgeBaseException(
                "Failed to generate embedding: AI service not configured",
                KnowledgeBaseException.EMBEDDING_FAILED
            )
        try:
            result = await self._llm.generate_embedding(text)
        except ApplicationException as e:
            raise KnowledgeBaseException(
                f"Failed to generate embedding: {e.message}",
                KnowledgeBaseException.EMBEDDING_FAILED
            )
        return result.embedding

    async def _index_entry(self, entry: Any) -> None:
        # SQL keeps the embedding, so a failed index write can be replayed
        if self._index is None or not entry.question_embedding:
            return
        try:
            await self._index.add(
                str(entry.id), entry.question_text, entry.question_embedding,
                entry.visibility, entry.course_code
            )
        except VectorStoreException as e:
            logger.error("Failed to index knowledge entry", extra={"entry_id": str(entry.id), "error": e.message})

    async def _unindex(self, entry_ids: List[str]) -> None:
        if self._index is None or not entry_ids:
            return
        try:
            await self._index.remove(entry_ids)
        except VectorStoreException as e:
            logger.error("Failed to remove knowledge entries from index", extra={"error": e.message})


class AnswerSynthesizer:
    """
    Rewrites retrieved material into a direct answer with the LLM.

    Returns None instead of raising, so callers can fall back to the raw
    material.
    """

    def __init__(self, llm_client: ILLMClient):
        self._llm = llm_client

    async def synthesize(self, question: str, context: str, course_code: Optional[str] = None) -> Optional[str]:
        prompt = AnswerPromptBuilder.build_prompt(question, context, course_code)

        try:
            response = await self._llm.chat_completion(
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                max_tokens=settings.llm_max_tokens,
                operation="answer_synthesis"
            )
        except LLMException as e:
            logger.warning("AI answer generation failed", extra={"error": e.message})
            return None

        answer = (response.content or "").strip()
        if not is_quality_answer(answer):
            logger.debug("Synthesized answer rejected by quality check")
            return None
        return answer


class TicketAutoResponseService:
    """
    Service suggesting answers for a ticket from the knowledge base and
    the course documents.
    """

    def __init__(
        self,
        llm_client: Optional[ILLMClient],
        knowledge_repository: IKnowledgeRepository,
        suggestion_repository: ISuggestionRepository,
        document_search: IDocumentSearch,
        index: Optional[IKnowledgeIndex] = None,
        synthesizer: Optional[AnswerSynthesizer] = None,
        tickets: Optional[ITicketLookup] = None
    ):
        self._llm = llm_client
        self._knowledge_repo = knowledge_repository
        self._suggestion_repo = suggestion_repository
        self._documents = document_search
        self._index = index
        self._synthesizer = synthesizer or AnswerSynthesizer(llm_client)
        self._tickets = tickets

    async def suggest_for_ticket(self, ticket_id: str) -> AutoResponseResult:
        """Look the ticket up and suggest answers for it."""
        ticket = await self._tickets.get_by_id(ticket_id) if self._tickets else None
        if ticket is None:
            return AutoResponseResult(success=False, error="Ticket not found")

        return await self.get_suggested_answers(
            str(ticket.id), ticket.title, ticket.description, ticket.course_code
        )

    async def get_suggested_answers(
        self,
        ticket_id: str,
        title: str,
        description: str,
        course_code: Optional[str] = None
    ) -> AutoResponseResult:
        """
        Embed the ticket text, search both sources concurrently and keep
        the best matches. Knowledge base matches are saved for the ticket.
        """
        query_text = f"{title}\n{description}"

        try:
            embedding = (await self._llm.generate_embedding(query_text)).embedding

            kb_results, doc_results = await asyncio.gather(
                self._search_knowledge_base(embedding, normalize_course_code(course_code)),
                self._search_documents(embedding, query_text)
            )

            suggestions = merge_suggestions(
                kb_results, doc_results, limit=settings.suggestion_max_results
            )
            if suggestions:
                await self._save_suggestions(ticket_id, suggestions)

        except ApplicationException as e:
            logger.error("Failed to suggest answers", extra={"ticket_id": ticket_id, "error": e.message})
            return AutoResponseResult(success=False, error=e.message)

        logger.info(
            "Suggested answers generated",
            extra={"ticket_id": ticket_id, "knowledge_base": len(kb_results), "documents": len(doc_results)}
        )
        return AutoResponseResult(success=True, suggestions=suggestions)

    async def _search_knowledge_base(
        self,
        embedding: List[float],
        course_code: Optional[str]
    ) -> List[SuggestedAnswer]:
        if self._index is None:
            return []

        try:
            hits = await self._index.search(
                embedding,
                top_k=settings.suggestion_max_results,
                threshold=settings.suggestion_similarity_threshold,
                course_code=course_code
            )
        except VectorStoreException as e:
            logger.warning("Knowledge base search failed", extra={"error": e.message})
            return []

        entries = await self._knowledge_repo.get_many([entry_id for entry_id, _ in hits])

        suggestions = []
        for entry_id, similarity in hits:
            entry = entries.get(entry_id)
            if entry is None:
                continue
            suggestions.append(SuggestedAnswer(
                id=entry_id,
                source=SuggestionSource.KNOWLEDGE_BASE,
                question_text=entry.question_text,
                answer_text=entry.answer_text,
                similarity_score=similarity,
                confidence=calculate_confidence(similarity),
                metadata=self._entry_metadata(entry)
            ))
        return suggestions

    async def _search_documents(self, embedding: List[float], question: str) -> List[SuggestedAnswer]:
        try:
            hits = await self._documents.search(
                embedding,
                top_k=settings.suggestion_max_results,
                threshold=settings.suggestion_similarity_threshold
            )
        except VectorStoreException as e:
            logger.warning("Document search failed", extra={"error": e.message})
            return []

        return list(await asyncio.gather(*(self._document_suggestion(hit, question) for hit in hits)))

    async def _document_suggestion(self, hit: DocumentHit, question: str) -> SuggestedAnswer:
        answer_text = hit.content
        # Multi-chunk documents get a synthesized answer instead of one raw chunk
        if hit.chunk_count > 1:
            synthesized = await self._synthesizer.synthesize(question, hit.content)
            if synthesized:
                answer_text = synthesized

        return SuggestedAnswer(
            id=hit.id,
            source=SuggestionSource.RAG_DOCUMENTS,
            question_text=hit.title,
            answer_text=answer_text,
            similarity_score=hit.similarity,
            confidence=calculate_confidence(hit.similarity),
            metadata={"tags": hit.tags, "chunk_count": hit.chunk_count}
        )

    async def _save_suggestions(self, ticket_id: str, suggestions: List[SuggestedAnswer]) -> None:
        rows = [
            {
                "entry_id": s.id,
                "similarity_score": round(s.similarity_score * 100),
                "rank_position": rank
            }
            for rank, s in enumerate((s for s in suggestions if s.from_knowledge_base), 1)
        ]
        if not rows:
            return

        try:
            await self._suggestion_repo.save(ticket_id, rows)
        except KnowledgeBaseException as e:
            logger.error("Failed to save suggestions", extra={"ticket_id": ticket_id, "error": e.message})

    async def mark_suggestion_viewed(self, ticket_id: str, entry_id: str) -> bool:
        return await self._suggestion_repo.mark_viewed(ticket_id, entry_id)

    async def rate_suggestion(self, ticket_id: str, entry_id: str, is_helpful: bool, student_id: str) -> None:
        """
        Record a student's rating and bump the entry's counter.

        Raises:
            KnowledgeBaseException: KB_ENTRY_NOT_FOUND or KB_DUPLICATE_FEEDBACK
        """
        if await self._knowledge_repo.get_by_id(entry_id) is None:
            raise KnowledgeBaseException("Knowledge entry not found", KnowledgeBaseException.ENTRY_NOT_FOUND)

        await self._suggestion_repo.add_feedback(entry_id, student_id, ticket_id, is_helpful)
        await self._suggestion_repo.set_helpful(ticket_id, entry_id, is_helpful)
        await self._knowledge_repo.increment_counters(
            entry_id,
            helpful=1 if is_helpful else 0,
            not_helpful=0 if is_helpful else 1
        )

        logger.info("Suggestion rated", extra={"ticket_id": ticket_id, "entry_id": entry_id, "is_helpful": is_helpful})

    async def get_saved_suggestions(self, ticket_id: str) -> List[SuggestedAnswer]:
        pairs = await self._suggestion_repo.list_for_ticket(ticket_id)
        return [
            SuggestedAnswer(
                id=str(entry.id),
                source=SuggestionSource.KNOWLEDGE_BASE,
                question_text=entry.question_text,
                answer_text=entry.answer_text,
                similarity_score=suggestion.similarity_score / 100,
                confidence=calculate_confidence(suggestion.similarity_score / 100),
                metadata={
                    **self._entry_metadata(entry),
                    "was_viewed": suggestion.was_viewed,
                    "was_helpful": suggestion.was_helpful,
                    "rank_position": suggestion.rank_position
                }
            )
            for suggestion, entry in pairs
        ]

    @staticmethod
    def _entry_metadata(entry: Any) -> Dict[str, Any]:
        return {
            "instructor_id": str(entry.instructor_id),
            "course_code": entry.course_code,
            "tags": entry.tags or [],
            "view_count": entry.view_count or 0,
            "helpful_count": entry.helpful_count or 0
        }
