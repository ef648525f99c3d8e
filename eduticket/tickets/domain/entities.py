"""
Tickets Domain Entities
========================

Pure Python domain objects for tickets and comments.

Following Domain-Driven Design principles, these entities contain
business rules and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from eduticket.config import (
    TicketStatus, VALID_PRIORITIES, VALID_STATUSES, VALID_TICKET_TYPES
)

MIN_DESCRIPTION_LENGTH = 10


@dataclass
class TicketDraft:
    """
    Ticket content as submitted by a student, before it is stored.
    """
    title: str
    description: str
    type: Optional[str]
    priority: Optional[str]
    course_code: Optional[str] = None
    class_name: Optional[str] = None
    project_group: Optional[str] = None

    def validate(self) -> List[str]:
        """
        Collect every validation error.

        A blank description reports both the missing value and the
        length rule, so errors are accumulated rather than short-circuited.
        """
        errors = []
        title = (self.title or "").strip()
        description = (self.description or "").strip()

        if not title:
            errors.append("Title is required")

        if not description:
            errors.append("Description is required")

        if len(description) < MIN_DESCRIPTION_LENGTH:
            errors.append(
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters long"
            )

        if not self.type:
            errors.append("Type is required")
        elif self.type not in VALID_TICKET_TYPES:
            errors.append(f"Type must be one of: {', '.join(VALID_TICKET_TYPES)}")

        if not self.priority:
            errors.append("Priority is required")
        elif self.priority not in VALID_PRIORITIES:
            errors.append(f"Priority must be one of: {', '.join(VALID_PRIORITIES)}")

        return errors

    def normalized(self) -> "TicketDraft":
        """Copy with trimmed text fields and blank optionals dropped."""
        def _clean(value: Optional[str]) -> Optional[str]:
            value = (value or "").strip()
            return value or None

        return TicketDraft(
            title=self.title.strip(),
            description=self.description.strip(),
            type=self.type,
            priority=self.priority,
            course_code=_clean(self.course_code),
            class_name=_clean(self.class_name),
            project_group=_clean(self.project_group),
        )


def is_valid_status(value: str) -> bool:
    return value in VALID_STATUSES


@dataclass
class TicketStats:
    """
    Aggregate ticket counts.

    ai_priority_match_rate is the share of triaged tickets whose final
    priority equals the AI suggestion; None when nothing was triaged.
    """
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)
    ai_triaged: int = 0
    ai_priority_match_rate: Optional[float] = None

    @property
    def active(self) -> int:
        return self.by_status.get(TicketStatus.OPEN, 0) + self.by_status.get(TicketStatus.IN_PROGRESS, 0)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple]) -> "TicketStats":
        """
        Build stats from (status, priority, type, ai_suggested_priority) rows.
        """
        stats = cls(by_status={s: 0 for s in VALID_STATUSES})
        matched = 0

        for status, priority, ticket_type, ai_priority in rows:
            stats.total += 1
            stats.by_status[status] = stats.by_status.get(status, 0) + 1
            stats.by_priority[priority] = stats.by_priority.get(priority, 0) + 1
            stats.by_type[ticket_type] = stats.by_type.get(ticket_type, 0) + 1

            if ai_priority:
                stats.ai_triaged += 1
                if ai_priority == priority:
                    matched += 1

        if stats.ai_triaged:
            stats.ai_priority_match_rate = round(matched / stats.ai_triaged, 2)

        return stats
