"""
Knowledge Infrastructure Repositories
======================================

SQLAlchemy implementations for knowledge entries, suggestions and
feedback. Database errors surface as KnowledgeBaseException so the API
can report a KB_* code.
"""

from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import select, update, delete, exists, or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from eduticket.knowledge.application import IKnowledgeRepository, ISuggestionRepository
from eduticket.knowledge.infrastructure.models import (
    KnowledgeEntryModel, KnowledgeSuggestionModel, KnowledgeFeedbackModel
)
from eduticket.core import KnowledgeBaseException, as_uuid


def _database_error(e: SQLAlchemyError) -> KnowledgeBaseException:
    return KnowledgeBaseException(f"Database error: {e}", KnowledgeBaseException.DATABASE_ERROR)


class SQLAlchemyKnowledgeRepository(IKnowledgeRepository):
    """SQLAlchemy implementation of knowledge entry storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, entry_id: str) -> Optional[Any]:
        entry_uuid = as_uuid(entry_id)
        if entry_uuid is None:
            return None
        return await self._session.get(KnowledgeEntryModel, entry_uuid)

    async def get_many(self, entry_ids: List[str]) -> Dict[str, Any]:
        uuids = [u for u in (as_uuid(i) for i in entry_ids) if u is not None]
        if not uuids:
            return {}

        stmt = select(KnowledgeEntryModel).where(KnowledgeEntryModel.id.in_(uuids))
        result = await self._session.execute(stmt)
        return {str(e.id): e for e in result.scalars().all()}

    async def is_latest(self, entry_id: str) -> bool:
        entry_uuid = as_uuid(entry_id)
        if entry_uuid is None:
            return False

        stmt = select(KnowledgeEntryModel.id).where(
            KnowledgeEntryModel.previous_version_id == entry_uuid
        ).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is None

    async def create(self, data: dict) -> Any:
        model = KnowledgeEntryModel(
            id=uuid4(),
            instructor_id=as_uuid(data["instructor_id"]),
            ticket_id=as_uuid(data.get("ticket_id")),
            question_text=data["question_text"],
            answer_text=data["answer_text"],
            tags=data.get("tags") or [],
            question_embedding=data.get("question_embedding"),
            visibility=data["visibility"],
            course_code=data.get("course_code"),
            view_count=data.get("view_count", 0),
            helpful_count=data.get("helpful_count", 0),
            not_helpful_count=data.get("not_helpful_count", 0),
            version=data.get("version", 1),
            previous_version_id=as_uuid(data.get("previous_version_id"))
        )

        try:
            self._session.add(model)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise _database_error(e)

        return model

    async def list_current(
        self,
        instructor_id: str,
        course_code: Optional[str] = None,
        visibility: Optional[str] = None,
        search_term: Optional[str] = None
    ) -> List[Any]:
        instructor_uuid = as_uuid(instructor_id)
        if instructor_uuid is None:
            return []

        successor = aliased(KnowledgeEntryModel)
        conditions = [
            KnowledgeEntryModel.instructor_id == instructor_uuid,
            ~exists().where(successor.previous_version_id == KnowledgeEntryModel.id)
        ]
        if course_code:
            conditions.append(KnowledgeEntryModel.course_code == course_code)
        if visibility:
            conditions.append(KnowledgeEntryModel.visibility == visibility)
        if search_term:
            pattern = f"%{search_term}%"
            conditions.append(or_(
                KnowledgeEntryModel.question_text.ilike(pattern),
                KnowledgeEntryModel.answer_text.ilike(pattern)
            ))

        stmt = (
            select(KnowledgeEntryModel)
            .where(and_(*conditions))
            .order_by(KnowledgeEntryModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_chain(self, entry_id: str) -> List[str]:
        ids = []
        current = await self.get_by_id(entry_id)
        while current is not None and current.id not in ids:
            ids.append(current.id)
            current = (
                await self._session.get(KnowledgeEntryModel, current.previous_version_id)
                if current.previous_version_id else None
            )
        if not ids:
            return []

        try:
            await self._session.execute(
                delete(KnowledgeSuggestionModel).where(KnowledgeSuggestionModel.entry_id.in_(ids))
            )
            await self._session.execute(
                delete(KnowledgeFeedbackModel).where(KnowledgeFeedbackModel.entry_id.in_(ids))
            )
            # Newest first so no row is left pointing at a deleted predecessor
            for row_id in ids:
                await self._session.execute(
                    delete(KnowledgeEntryModel).where(KnowledgeEntryModel.id == row_id)
                )
        except SQLAlchemyError as e:
            raise _database_error(e)

        return [str(i) for i in ids]

    async def increment_counters(
        self,
        entry_id: str,
        views: int = 0,
        helpful: int = 0,
        not_helpful: int = 0
    ) -> bool:
        entry_uuid = as_uuid(entry_id)
        if entry_uuid is None:
            return False

        stmt = (
            update(KnowledgeEntryModel)
            .where(KnowledgeEntryModel.id == entry_uuid)
            .values(
                view_count=KnowledgeEntryModel.view_count + views,
                helpful_count=KnowledgeEntryModel.helpful_count + helpful,
                not_helpful_count=KnowledgeEntryModel.not_helpful_count + not_helpful
            )
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise _database_error(e)
        return result.rowcount > 0


class SQLAlchemySuggestionRepository(ISuggestionRepository):
    """SQLAlchemy implementation of ticket suggestions and feedback."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, ticket_id: str, rows: List[dict]) -> None:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return

        models = [
            KnowledgeSuggestionModel(
                id=uuid4(),
                ticket_id=ticket_uuid,
                entry_id=as_uuid(row["entry_id"]),
                similarity_score=row["similarity_score"],
                rank_position=row["rank_position"]
            )
            for row in rows
            if as_uuid(row["entry_id"]) is not None
        ]

        try:
            async with self._session.begin_nested():
                self._session.add_all(models)
        except SQLAlchemyError as e:
            raise _database_error(e)

    async def _set(self, ticket_id: str, entry_id: str, **values: Any) -> bool:
        ticket_uuid, entry_uuid = as_uuid(ticket_id), as_uuid(entry_id)
        if ticket_uuid is None or entry_uuid is None:
            return False

        stmt = (
            update(KnowledgeSuggestionModel)
            .where(
                KnowledgeSuggestionModel.ticket_id == ticket_uuid,
                KnowledgeSuggestionModel.entry_id == entry_uuid
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_viewed(self, ticket_id: str, entry_id: str) -> bool:
        return await self._set(ticket_id, entry_id, was_viewed=True)

    async def set_helpful(self, ticket_id: str, entry_id: str, is_helpful: bool) -> bool:
        return await self._set(ticket_id, entry_id, was_helpful=is_helpful)

    async def add_feedback(
        self,
        entry_id: str,
        student_id: str,
        ticket_id: Optional[str],
        is_helpful: bool
    ) -> None:
        entry_uuid, student_uuid = as_uuid(entry_id), as_uuid(student_id)
        if entry_uuid is None or student_uuid is None:
            raise KnowledgeBaseException("Invalid entry or student ID", KnowledgeBaseException.VALIDATION_FAILED)

        ticket_uuid = as_uuid(ticket_id)
        # NULL ticket ids never collide in a unique index, so check explicitly
        if ticket_uuid is None:
            stmt = select(KnowledgeFeedbackModel.id).where(
                KnowledgeFeedbackModel.entry_id == entry_uuid,
                KnowledgeFeedbackModel.student_id == student_uuid,
                KnowledgeFeedbackModel.ticket_id.is_(None)
            ).limit(1)
            if (await self._session.execute(stmt)).scalar_one_or_none() is not None:
                raise KnowledgeBaseException(
                    "Feedback already submitted", KnowledgeBaseException.DUPLICATE_FEEDBACK
                )

        model = KnowledgeFeedbackModel(
            id=uuid4(),
            entry_id=entry_uuid,
            student_id=student_uuid,
            ticket_id=ticket_uuid,
            is_helpful=is_helpful
        )

        try:
            async with self._session.begin_nested():
                self._session.add(model)
        except IntegrityError:
            raise KnowledgeBaseException(
                "Feedback already submitted", KnowledgeBaseException.DUPLICATE_FEEDBACK
            )
        except SQLAlchemyError as e:
            raise _database_error(e)

    async def list_for_ticket(self, ticket_id: str) -> List[Tuple[Any, Any]]:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(KnowledgeSuggestionModel, KnowledgeEntryModel)
            .join(KnowledgeEntryModel, KnowledgeEntryModel.id == KnowledgeSuggestionModel.entry_id)
            .where(KnowledgeSuggestionModel.ticket_id == ticket_uuid)
            .order_by(KnowledgeSuggestionModel.created_at.desc(), KnowledgeSuggestionModel.rank_position)
        )
        result = await self._session.execute(stmt)
        return [(suggestion, entry) for suggestion, entry in result.all()]
