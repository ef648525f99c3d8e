"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for the AI triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from eduticket.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
