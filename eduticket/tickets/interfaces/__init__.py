"""
Tickets Interfaces Layer
=========================

Contains:
- Controllers: FastAPI route handlers
"""

from eduticket.tickets.interfaces.controllers import (
    tickets_router,
    profiles_router,
    comments_router,
)

__all__ = ["tickets_router", "profiles_router", "comments_router"]
