"""
Knowledge Interfaces Layer
===========================

Contains:
- Controllers: FastAPI route handlers
"""

from eduticket.knowledge.interfaces.controllers import knowledge_router

__all__ = ["knowledge_router"]
