"""
Tickets Infrastructure Layer
=============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
- External: Triage adapter
"""

from eduticket.tickets.infrastructure.models import ProfileModel, TicketModel, CommentModel
from eduticket.tickets.infrastructure.repositories import (
    SQLAlchemyProfileRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyCommentRepository,
)
from eduticket.tickets.infrastructure.external import TriageSuggesterAdapter

__all__ = [
    "ProfileModel",
    "TicketModel",
    "CommentModel",
    "SQLAlchemyProfileRepository",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyCommentRepository",
    "TriageSuggesterAdapter",
]
