"""
Documents Interfaces Layer
===========================

Contains:
- Controllers: FastAPI route handlers
"""

from eduticket.documents.interfaces.controllers import documents_router

__all__ = ["documents_router"]
