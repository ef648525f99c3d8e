"""
Assistant Infrastructure Repositories
======================================

SQLAlchemy implementation of chat storage.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from uuid import uuid4

from sqlalchemy import select, delete, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eduticket.assistant.application import IChatRepository
from eduticket.assistant.infrastructure.models import (
    ChatSessionModel, ChatMessageModel, AssistantRequestModel
)
from eduticket.core import RepositoryException, as_uuid


class SQLAlchemyChatRepository(IChatRepository):
    """SQLAlchemy implementation for chat sessions and messages."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create_session(self, user_id: str, title: Optional[str] = None) -> Any:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            raise RepositoryException(f"Invalid user ID: {user_id}")

        model = ChatSessionModel(id=uuid4(), user_id=user_uuid, title=title)

        self._session.add(model)
        await self._session.flush()

        return model

    async def get_session(self, session_id: str) -> Optional[Any]:
        session_uuid = as_uuid(session_id)
        if session_uuid is None:
            return None
        return await self._session.get(ChatSessionModel, session_uuid)

    async def list_sessions(self, user_id: str, limit: int = 10) -> List[Any]:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return []

        stmt = (
            select(ChatSessionModel)
            .where(ChatSessionModel.user_id == user_uuid)
            .order_by(ChatSessionModel.updated_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_session(self, session_id: str) -> bool:
        session_uuid = as_uuid(session_id)
        if session_uuid is None:
            return False

        # Explicit so that backends without enforced foreign keys cascade too
        await self._session.execute(
            delete(ChatMessageModel).where(ChatMessageModel.session_id == session_uuid)
        )
        result = await self._session.execute(
            delete(ChatSessionModel).where(ChatSessionModel.id == session_uuid)
        )
        return result.rowcount > 0

    async def list_messages(self, session_id: str, limit: Optional[int] = None) -> List[Any]:
        session_uuid = as_uuid(session_id)
        if session_uuid is None:
            return []

        stmt = (
            select(ChatMessageModel)
            .where(ChatMessageModel.session_id == session_uuid)
            .order_by(ChatMessageModel.created_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add_messages(self, session_id: str, messages: List[dict]) -> None:
        """
        Append messages in a savepoint so a failure leaves the outer
        transaction usable.
        """
        session_uuid = as_uuid(session_id)
        if session_uuid is None or await self.get_session(session_id) is None:
            raise RepositoryException(f"Chat session {session_id} not found")

        # Strictly increasing timestamps keep the pair ordered
        now = datetime.now(timezone.utc)
        try:
            async with self._session.begin_nested():
                for offset, message in enumerate(messages):
                    self._session.add(ChatMessageModel(
                        id=uuid4(),
                        session_id=session_uuid,
                        role=message["role"],
                        content=message["content"],
                        message_metadata=message.get("metadata") or {},
                        created_at=now + timedelta(microseconds=offset)
                    ))
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to save messages: {e}")

    async def touch_session(self, session_id: str) -> None:
        session_uuid = as_uuid(session_id)
        if session_uuid is None:
            return

        try:
            await self._session.execute(
                update(ChatSessionModel)
                .where(ChatSessionModel.id == session_uuid)
                .values(updated_at=datetime.now(timezone.utc))
            )
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to update session: {e}")

    async def record_user_request(self, user_id: str) -> None:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return

        try:
            async with self._session.begin_nested():
                self._session.add(AssistantRequestModel(id=uuid4(), user_id=user_uuid))
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to record request: {e}")

    async def count_user_requests_since(self, user_id: str, since: datetime) -> int:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return 0

        stmt = select(func.count(AssistantRequestModel.id)).where(
            AssistantRequestModel.user_id == user_uuid,
            AssistantRequestModel.created_at >= since
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Rate limit query failed: {e}")
        return result.scalar() or 0
