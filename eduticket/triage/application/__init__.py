"""
Triage Application Layer
=========================

Application layer for the AI triage module.

Contains:
- Services: TriageService
- DTOs: Response models for API serialization
"""

from eduticket.triage.application.dto import (
    TriageResponse,
    TriageErrorResponse,
)
from eduticket.triage.application.services import (
    TriageService,
    ILLMClient,
)

__all__ = [
    "TriageResponse",
    "TriageErrorResponse",
    "TriageService",
    "ILLMClient",
]
