"""
Tickets Infrastructure Repositories
=====================================

Concrete implementations of repository interfaces using SQLAlchemy.

Ids cross the application boundary as strings; an unparseable id is
treated like a missing row.
"""

from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from eduticket.tickets.application import (
    IProfileRepository, ITicketRepository, ICommentRepository
)
from eduticket.tickets.domain import TicketDraft
from eduticket.tickets.infrastructure.models import ProfileModel, TicketModel, CommentModel
from eduticket.core import RepositoryException, as_uuid


class SQLAlchemyProfileRepository(IProfileRepository):
    """SQLAlchemy implementation of profile repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, profile_id: str) -> Optional[Any]:
        profile_uuid = as_uuid(profile_id)
        if profile_uuid is None:
            return None
        return await self._session.get(ProfileModel, profile_uuid)

    async def get_by_email(self, email: str) -> Optional[Any]:
        stmt = select(ProfileModel).where(ProfileModel.email == email)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, profile_ids: List[str]) -> Dict[str, Any]:
        uuids = [u for u in (as_uuid(i) for i in profile_ids) if u is not None]
        if not uuids:
            return {}

        stmt = select(ProfileModel).where(ProfileModel.id.in_(uuids))
        result = await self._session.execute(stmt)
        return {str(p.id): p for p in result.scalars().all()}

    async def create(
        self,
        email: str,
        full_name: Optional[str],
        role: str,
        profile_id: Optional[str] = None
    ) -> Any:
        model = ProfileModel(
            id=as_uuid(profile_id) if profile_id else uuid4(),
            email=email,
            full_name=full_name,
            role=role
        )

        self._session.add(model)
        await self._session.flush()

        return model


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of tickets using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Any]:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return None
        return await self._session.get(TicketModel, ticket_uuid)

    async def create(
        self,
        draft: TicketDraft,
        creator_id: str,
        ai_suggested_priority: Optional[str]
    ) -> Any:
        creator_uuid = as_uuid(creator_id)
        if creator_uuid is None:
            raise RepositoryException(f"Invalid creator ID: {creator_id}")

        model = TicketModel(
            id=uuid4(),
            title=draft.title,
            description=draft.description,
            type=draft.type,
            priority=draft.priority,
            ai_suggested_priority=ai_suggested_priority,
            course_code=draft.course_code,
            class_name=draft.class_name,
            project_group=draft.project_group,
            creator_id=creator_uuid
        )

        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        return model

    async def list(self, filters: dict, limit: int = 50) -> List[Any]:
        """List tickets with filters."""
        stmt = select(TicketModel)

        conditions = []
        for key in ("creator_id", "assignee_id"):
            if key in filters:
                value = as_uuid(filters[key])
                if value is None:
                    return []
                conditions.append(getattr(TicketModel, key) == value)

        if "status" in filters:
            conditions.append(TicketModel.status == filters["status"])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(TicketModel.created_at.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update_fields(self, ticket_id: str, **fields: Any) -> Optional[Any]:
        model = await self.get_by_id(ticket_id)
        if model is None:
            return None

        for key, value in fields.items():
            if key.endswith("_id"):
                value = as_uuid(value)
            setattr(model, key, value)

        await self._session.flush()
        await self._session.refresh(model)

        return model

    async def stats_rows(self, creator_id: Optional[str] = None) -> List[tuple]:
        stmt = select(
            TicketModel.status,
            TicketModel.priority,
            TicketModel.type,
            TicketModel.ai_suggested_priority
        )
        if creator_id:
            creator_uuid = as_uuid(creator_id)
            if creator_uuid is None:
                return []
            stmt = stmt.where(TicketModel.creator_id == creator_uuid)

        result = await self._session.execute(stmt)
        return [tuple(row) for row in result.all()]


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_for_ticket(self, ticket_id: str) -> List[Any]:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(CommentModel)
            .where(CommentModel.ticket_id == ticket_uuid)
            .order_by(CommentModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, comment_id: str) -> Optional[Any]:
        comment_uuid = as_uuid(comment_id)
        if comment_uuid is None:
            return None
        return await self._session.get(CommentModel, comment_uuid)

    async def create(self, ticket_id: str, user_id: str, content: str) -> Any:
        model = CommentModel(
            id=uuid4(),
            ticket_id=as_uuid(ticket_id),
            user_id=as_uuid(user_id),
            content=content
        )

        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        return model

    async def update(self, comment_id: str, content: str) -> Optional[Any]:
        model = await self.get_by_id(comment_id)
        if model is None:
            return None

        model.content = content
        await self._session.flush()
        await self._session.refresh(model)

        return model

    async def delete(self, comment_id: str) -> bool:
        comment_uuid = as_uuid(comment_id)
        if comment_uuid is None:
            return False

        result = await self._session.execute(
            delete(CommentModel).where(CommentModel.id == comment_uuid)
        )
        return result.rowcount > 0
