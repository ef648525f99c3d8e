"""
Triage Domain Entities
======================

Domain entities for the AI triage module.

Contains pure Python business objects for suggesting a ticket type and
priority from a student's ticket text.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Tuple

from eduticket.config import Priority, TriageType, TRIAGE_TYPES, VALID_PRIORITIES
from eduticket.core import ValidationException

DEFAULT_TYPE = TriageType.QUESTION
DEFAULT_PRIORITY = Priority.MEDIUM


@dataclass(frozen=True)
class TriageRequest:
    """Ticket text submitted for triage. Fields are already trimmed."""
    title: str
    description: str
    type: str

    @classmethod
    def from_payload(cls, data: Any) -> "TriageRequest":
        """
        Validate a raw request body.

        Raises:
            ValidationException: With the first failing field's message
        """
        if not data or not isinstance(data, dict):
            raise ValidationException("Invalid request body")

        values = {}
        for name in ("title", "description", "type"):
            value = data.get(name)
            if not value or not isinstance(value, str) or not value.strip():
                raise ValidationException(
                    f"{name.capitalize()} is required and must be a non-empty string"
                )
            values[name] = value.strip()

        return cls(**values)


@dataclass
class TriageSuggestion:
    """
    Result of ticket triage.

    Contains the ticket type and priority suggested by the LLM.
    """
    suggested_type: str
    suggested_priority: str
    model_used: str = ""
    latency_ms: int = 0
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parse_type_and_priority(response: str) -> Tuple[str, str]:
    """
    Extract (type, priority) from a free-form model answer.

    The model is asked for "<type> <priority>" but may answer with a single
    word or extra text. Each value is the first candidate, in declaration
    order, found anywhere in the normalized text; unknown values fall back
    to question / medium.
    """
    normalized = re.sub(r"\s+", " ", response.strip().lower())

    priority = next((p for p in VALID_PRIORITIES if p in normalized), DEFAULT_PRIORITY)
    ticket_type = next((t for t in TRIAGE_TYPES if t in normalized), DEFAULT_TYPE)

    return ticket_type, priority


class TriagePromptBuilder:
    """
    Builds prompts for ticket triage.

    All prompt text lives here.
    """

    SYSTEM_PROMPT = "You are a ticket triage assistant. Respond with only one priority word."

    USER_PROMPT = """You are a ticket triage assistant for a university study management system.

Analyze this student ticket and suggest BOTH the ticket TYPE and PRIORITY.

TICKET DETAILS:
- Title: {title}
- Description: {description}

TYPE CATEGORIES (choose the single best):
- bug: Software errors, crashes, malfunctions
- feature: New functionality requests
- question: General questions or clarifications
- task: General tasks or requests
- grading: Grade disputes, scoring questions, grade appeals
- report: Academic reports, system issues, complaints
- config: Setup help, configuration issues, environment setup
- assignment: Assignment help, project guidance, homework support
- exam: Exam-related questions, test issues, exam preparation
- submission: File upload problems, submission errors, deadline issues
- technical: Technical difficulties, software setup, system problems
- academic: General academic support, course content questions

PRIORITY LEVELS (choose one):
- critical: System down, major deadline issues, blocking problems
- high: Important issues affecting learning, urgent assignments
- medium: Normal academic questions, standard support needs
- low: General questions, non-urgent requests

Respond with ONLY two lowercase words separated by a space in the format:
"<type> <priority>"

Examples: "grading high", "assignment medium", "technical critical", "question low"

Do not include any explanation or additional text."""

    @classmethod
    def build_prompt(cls, request: TriageRequest) -> str:
        """Build the triage prompt from ticket content."""
        return cls.USER_PROMPT.format(title=request.title, description=request.description)

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for triage."""
        return cls.SYSTEM_PROMPT
