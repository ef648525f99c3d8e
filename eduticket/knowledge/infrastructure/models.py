"""
Knowledge Infrastructure Models
================================

SQLAlchemy ORM models for knowledge entries, ticket suggestions and
student feedback.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    String, DateTime, Integer, Boolean, Text, Uuid, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from eduticket.infrastructure.database import Base
from eduticket.config import Visibility


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeEntryModel(Base):
    """
    Database model for a knowledge entry version.

    Updates insert a new row pointing at its predecessor through
    previous_version_id; only the newest row of a chain is searchable.
    """
    __tablename__ = "knowledge_entries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    instructor_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ticket_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True
    )

    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    answer_text: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    question_embedding: Mapped[Optional[List[float]]] = mapped_column(JSON, nullable=True)

    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=Visibility.PUBLIC)
    course_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    # Statistics
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    not_helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Versioning
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_version_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("knowledge_entries.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class KnowledgeSuggestionModel(Base):
    """
    A knowledge entry suggested for a ticket.

    similarity_score is stored as an integer percentage.
    """
    __tablename__ = "knowledge_suggestions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entry_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("knowledge_entries.id", ondelete="CASCADE"), nullable=False
    )
    similarity_score: Mapped[int] = mapped_column(Integer, nullable=False)
    rank_position: Mapped[int] = mapped_column(Integer, nullable=False)
    was_viewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    was_helpful: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class KnowledgeFeedbackModel(Base):
    """A student's helpful / not helpful vote on an entry."""
    __tablename__ = "knowledge_feedback"
    __table_args__ = (
        UniqueConstraint("entry_id", "student_id", "ticket_id", name="uq_knowledge_feedback_vote"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    entry_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("knowledge_entries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    ticket_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=True
    )
    is_helpful: Mapped[bool] = mapped_column(Boolean, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
