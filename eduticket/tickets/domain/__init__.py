"""
Tickets Domain Layer
====================

Contains:
- Entities: TicketDraft, TicketStats
- Status validation

This layer is framework-agnostic and contains pure business logic.
"""

from eduticket.tickets.domain.entities import (
    TicketDraft,
    TicketStats,
    is_valid_status,
    MIN_DESCRIPTION_LENGTH,
)

__all__ = [
    "TicketDraft",
    "TicketStats",
    "is_valid_status",
    "MIN_DESCRIPTION_LENGTH",
]
