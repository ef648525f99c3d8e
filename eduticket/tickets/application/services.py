"""
Tickets Application Services
=============================

Application services orchestrate ticket rules and coordinate between
domain objects, repositories and the AI triage module.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from typing import Any, Dict, List, Optional, Tuple
from abc import ABC, abstractmethod

from eduticket.config import VALID_ROLES
from eduticket.core import (
    ApplicationException, ResourceNotFoundException, ValidationException, as_uuid
)
from eduticket.tickets.domain import TicketDraft, TicketStats, is_valid_status
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IProfileRepository(ABC):
    """Interface for profile data access."""

    @abstractmethod
    async def get_by_id(self, profile_id: str) -> Optional[Any]:
        """Get profile by id."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Any]:
        """Get profile by email."""

    @abstractmethod
    async def get_many(self, profile_ids: List[str]) -> Dict[str, Any]:
        """Get profiles keyed by id string."""

    @abstractmethod
    async def create(
        self,
        email: str,
        full_name: Optional[str],
        role: str,
        profile_id: Optional[str] = None
    ) -> Any:
        """Create new profile."""


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Any]:
        """Get ticket by id."""

    @abstractmethod
    async def create(
        self,
        draft: TicketDraft,
        creator_id: str,
        ai_suggested_priority: Optional[str]
    ) -> Any:
        """Create new ticket."""

    @abstractmethod
    async def list(self, filters: dict, limit: int = 50) -> List[Any]:
        """List tickets with filters, newest first."""

    @abstractmethod
    async def update_fields(self, ticket_id: str, **fields: Any) -> Optional[Any]:
        """Update columns of a ticket; None if it does not exist."""

    @abstractmethod
    async def stats_rows(self, creator_id: Optional[str] = None) -> List[tuple]:
        """Get (status, priority, type, ai_suggested_priority) per ticket."""


class ICommentRepository(ABC):
    """Interface for comment data access."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Any]:
        """List comments oldest first."""

    @abstractmethod
    async def get_by_id(self, comment_id: str) -> Optional[Any]:
        """Get comment by id."""

    @abstractmethod
    async def create(self, ticket_id: str, user_id: str, content: str) -> Any:
        """Create new comment."""

    @abstractmethod
    async def update(self, comment_id: str, content: str) -> Optional[Any]:
        """Replace comment content."""

    @abstractmethod
    async def delete(self, comment_id: str) -> bool:
        """Delete a comment; False if it did not exist."""


class ITriageSuggester(ABC):
    """Interface to the AI triage module."""

    @abstractmethod
    async def suggest(self, title: str, description: str, ticket_type: str) -> Any:
        """Return a suggestion carrying suggested_type and suggested_priority."""


# ========== Application Services ==========

class ProfileService:
    """Service for user profiles."""

    def __init__(self, profile_repository: IProfileRepository):
        self._profile_repo = profile_repository

    async def create_profile(
        self,
        email: str,
        full_name: Optional[str] = None,
        role: str = "student",
        profile_id: Optional[str] = None
    ) -> Any:
        email = email.strip().lower()
        if profile_id and as_uuid(profile_id) is None:
            raise ValidationException("Invalid profile id")
        if role not in VALID_ROLES:
            raise ValidationException(f"Role must be one of: {', '.join(VALID_ROLES)}")
        if await self._profile_repo.get_by_email(email):
            raise ValidationException("A profile with this email already exists")

        return await self._profile_repo.create(email, full_name, role, profile_id)

    async def get_profile(self, profile_id: str) -> Any:
        profile = await self._profile_repo.get_by_id(profile_id)
        if profile is None:
            raise ResourceNotFoundException("Profile", profile_id)
        return profile


class TicketService:
    """
    Service for ticket lifecycle operations.

    Creation asks the triage module for a priority first; a triage failure
    only leaves ai_suggested_priority empty.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        profile_repository: IProfileRepository,
        triage: Optional[ITriageSuggester] = None
    ):
        self._ticket_repo = ticket_repository
        self._profile_repo = profile_repository
        self._triage = triage

    async def create_ticket(self, draft: TicketDraft, creator_id: str) -> Any:
        """
        Validate and store a new ticket.

        Raises:
            ValidationException: All validation messages joined with ", "
            ResourceNotFoundException: Unknown creator
        """
        errors = draft.validate()
        if errors:
            raise ValidationException(", ".join(errors))

        if await self._profile_repo.get_by_id(creator_id) is None:
            raise ResourceNotFoundException("Profile", creator_id)

        draft = draft.normalized()
        ai_priority = await self._suggest_priority(draft)

        ticket = await self._ticket_repo.create(draft, creator_id, ai_priority)

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": str(ticket.id),
                "priority": draft.priority,
                "ai_suggested_priority": ai_priority
            }
        )
        return ticket

    async def _suggest_priority(self, draft: TicketDraft) -> Optional[str]:
        if self._triage is None:
            return None

        try:
            suggestion = await self._triage.suggest(draft.title, draft.description, draft.type)
        except ApplicationException as e:
            logger.warning("AI triage unavailable, creating ticket without suggestion",
                           extra={"error": e.message})
            return None

        return suggestion.suggested_priority

    async def get_ticket(self, ticket_id: str) -> Tuple[Any, Any, Any]:
        """
        Get a ticket with its creator and assignee profiles.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        ids = [str(ticket.creator_id)]
        if ticket.assignee_id:
            ids.append(str(ticket.assignee_id))
        profiles = await self._profile_repo.get_many(ids)

        assignee = profiles.get(str(ticket.assignee_id)) if ticket.assignee_id else None
        return ticket, profiles.get(str(ticket.creator_id)), assignee

    async def list_tickets(
        self,
        creator_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50
    ) -> List[Any]:
        filters = {}
        if creator_id:
            filters["creator_id"] = creator_id
        if assignee_id:
            filters["assignee_id"] = assignee_id
        if status:
            filters["status"] = status

        return await self._ticket_repo.list(filters, limit=limit)

    async def update_status(self, ticket_id: str, status: str) -> Any:
        if not is_valid_status(status):
            raise ValidationException(f"Invalid status: {status}")

        ticket = await self._ticket_repo.update_fields(ticket_id, status=status)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        logger.info("Ticket status updated", extra={"ticket_id": ticket_id, "status": status})
        return ticket

    async def update_assignee(self, ticket_id: str, assignee_id: Optional[str]) -> Any:
        if assignee_id and await self._profile_repo.get_by_id(assignee_id) is None:
            raise ResourceNotFoundException("Profile", assignee_id)

        ticket = await self._ticket_repo.update_fields(ticket_id, assignee_id=assignee_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        logger.info("Ticket assignee updated", extra={"ticket_id": ticket_id, "assignee_id": assignee_id})
        return ticket

    async def get_stats(self, creator_id: Optional[str] = None) -> TicketStats:
        rows = await self._ticket_repo.stats_rows(creator_id)
        return TicketStats.from_rows(rows)


class CommentService:
    """Service for ticket comments."""

    def __init__(
        self,
        comment_repository: ICommentRepository,
        ticket_repository: ITicketRepository,
        profile_repository: IProfileRepository
    ):
        self._comment_repo = comment_repository
        self._ticket_repo = ticket_repository
        self._profile_repo = profile_repository

    async def list_comments(self, ticket_id: str) -> List[Tuple[Any, Any]]:
        """Get (comment, author) pairs for a ticket, oldest first."""
        if await self._ticket_repo.get_by_id(ticket_id) is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        comments = await self._comment_repo.list_for_ticket(ticket_id)
        authors = await self._profile_repo.get_many(list({str(c.user_id) for c in comments}))
        return [(c, authors.get(str(c.user_id))) for c in comments]

    async def create_comment(self, ticket_id: str, user_id: str, content: str) -> Any:
        content = (content or "").strip()
        if not content:
            raise ValidationException("Comment content is required")
        if await self._ticket_repo.get_by_id(ticket_id) is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        if await self._profile_repo.get_by_id(user_id) is None:
            raise ResourceNotFoundException("Profile", user_id)

        return await self._comment_repo.create(ticket_id, user_id, content)

    async def update_comment(self, comment_id: str, content: str) -> Any:
        content = (content or "").strip()
        if not content:
            raise ValidationException("Comment content is required")

        comment = await self._comment_repo.update(comment_id, content)
        if comment is None:
            raise ResourceNotFoundException("Comment", comment_id)
        return comment

    async def delete_comment(self, comment_id: str) -> None:
        if not await self._comment_repo.delete(comment_id):
            raise ResourceNotFoundException("Comment", comment_id)
