"""
Tickets Application Layer
==========================

Contains:
- Services: ProfileService, TicketService, CommentService
- Repository interfaces
- DTOs: Request/Response models for API serialization
"""

from eduticket.tickets.application.dto import (
    ProfileCreateRequest,
    ProfileResponse,
    TicketCreateRequest,
    TicketResponse,
    TicketListResponse,
    StatusUpdateRequest,
    AssigneeUpdateRequest,
    OperationResult,
    CommentCreateRequest,
    CommentUpdateRequest,
    CommentResponse,
    TicketStatsResponse,
    UserSummary,
)
from eduticket.tickets.application.services import (
    IProfileRepository,
    ITicketRepository,
    ICommentRepository,
    ITriageSuggester,
    ProfileService,
    TicketService,
    CommentService,
)

__all__ = [
    "ProfileCreateRequest",
    "ProfileResponse",
    "TicketCreateRequest",
    "TicketResponse",
    "TicketListResponse",
    "StatusUpdateRequest",
    "AssigneeUpdateRequest",
    "OperationResult",
    "CommentCreateRequest",
    "CommentUpdateRequest",
    "CommentResponse",
    "TicketStatsResponse",
    "UserSummary",
    "IProfileRepository",
    "ITicketRepository",
    "ICommentRepository",
    "ITriageSuggester",
    "ProfileService",
    "TicketService",
    "CommentService",
]
