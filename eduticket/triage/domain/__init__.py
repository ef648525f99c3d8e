"""
Triage Domain Layer
===================

Domain layer for the AI triage module.

Contains:
- Entities: TriageRequest, TriageSuggestion
- Prompt building and answer parsing

This layer is framework-agnostic and contains pure business logic.
"""

from eduticket.triage.domain.entities import (
    TriageRequest,
    TriageSuggestion,
    TriagePromptBuilder,
    parse_type_and_priority,
    DEFAULT_TYPE,
    DEFAULT_PRIORITY,
)

__all__ = [
    "TriageRequest",
    "TriageSuggestion",
    "TriagePromptBuilder",
    "parse_type_and_priority",
    "DEFAULT_TYPE",
    "DEFAULT_PRIORITY",
]
