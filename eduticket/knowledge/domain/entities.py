"""
Knowledge Domain Entities
=========================

Pure Python business objects and rules for the knowledge base.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from eduticket.config import Confidence, SuggestionSource, Visibility, VALID_VISIBILITIES
from eduticket.core import KnowledgeBaseException

MAX_QUESTION_LENGTH = 2000
MAX_ANSWER_LENGTH = 10000
MAX_TAGS = 10
MAX_TAG_LENGTH = 50

HIGH_CONFIDENCE = 0.85
MEDIUM_CONFIDENCE = 0.75

MIN_ANSWER_LENGTH = 50
LOW_QUALITY_PHRASES = (
    "i don't know",
    "no information",
    "cannot answer",
    "sorry",
)


def _invalid(message: str) -> KnowledgeBaseException:
    return KnowledgeBaseException(message, KnowledgeBaseException.VALIDATION_FAILED)


def sanitize_tags(tags: Optional[List[str]]) -> List[str]:
    """Keep at most MAX_TAGS tags, each trimmed and cut to MAX_TAG_LENGTH."""
    cleaned = [tag.strip()[:MAX_TAG_LENGTH] for tag in (tags or [])[:MAX_TAGS]]
    return [tag for tag in cleaned if tag]


def normalize_course_code(course_code: Optional[str]) -> Optional[str]:
    code = (course_code or "").strip().upper()
    return code or None


def check_visibility(visibility: str, course_code: Optional[str]) -> None:
    """
    Raises:
        KnowledgeBaseException: KB_INVALID_VISIBILITY
    """
    if visibility not in VALID_VISIBILITIES:
        raise KnowledgeBaseException(
            f"Visibility must be one of: {', '.join(VALID_VISIBILITIES)}",
            KnowledgeBaseException.INVALID_VISIBILITY
        )
    if visibility == Visibility.COURSE_SPECIFIC and not (course_code or "").strip():
        raise KnowledgeBaseException(
            "Course code is required for course-specific visibility",
            KnowledgeBaseException.INVALID_VISIBILITY
        )


def check_lengths(question_text: str, answer_text: str) -> None:
    """
    Raises:
        KnowledgeBaseException: KB_VALIDATION_FAILED
    """
    if len(question_text) > MAX_QUESTION_LENGTH:
        raise _invalid(f"Question text must be {MAX_QUESTION_LENGTH} characters or less")
    if len(answer_text) > MAX_ANSWER_LENGTH:
        raise _invalid(f"Answer text must be {MAX_ANSWER_LENGTH} characters or less")


@dataclass
class KnowledgeEntryInput:
    """
    A new knowledge entry as written by an instructor.
    """
    instructor_id: str
    question_text: str
    answer_text: str
    visibility: str = Visibility.PUBLIC
    tags: List[str] = field(default_factory=list)
    course_code: Optional[str] = None
    ticket_id: Optional[str] = None

    def validate(self) -> None:
        """
        Raises:
            KnowledgeBaseException: On the first failing rule
        """
        if not (self.instructor_id or "").strip():
            raise _invalid("Instructor ID is required")
        if not (self.question_text or "").strip():
            raise _invalid("Question text is required")
        if not (self.answer_text or "").strip():
            raise _invalid("Answer text is required")

        check_visibility(self.visibility, self.course_code)
        check_lengths(self.question_text, self.answer_text)

    def sanitized(self) -> "KnowledgeEntryInput":
        return replace(
            self,
            question_text=self.question_text.strip()[:MAX_QUESTION_LENGTH],
            answer_text=self.answer_text.strip()[:MAX_ANSWER_LENGTH],
            tags=sanitize_tags(self.tags),
            course_code=normalize_course_code(self.course_code),
            ticket_id=self.ticket_id or None
        )


@dataclass
class KnowledgeEntryUpdate:
    """Fields an instructor may change; None means unchanged."""
    question_text: Optional[str] = None
    answer_text: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[str] = None
    course_code: Optional[str] = None


@dataclass
class StatisticsUpdate:
    increment_views: bool = False
    increment_helpful: bool = False
    increment_not_helpful: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.increment_views or self.increment_helpful or self.increment_not_helpful)


def calculate_confidence(similarity: float) -> str:
    if similarity >= HIGH_CONFIDENCE:
        return Confidence.HIGH
    if similarity >= MEDIUM_CONFIDENCE:
        return Confidence.MEDIUM
    return Confidence.LOW


def is_quality_answer(answer: str) -> bool:
    """An answer is usable when it is long enough and does not hedge."""
    if len(answer) < MIN_ANSWER_LENGTH:
        return False
    lowered = answer.lower()
    return not any(phrase in lowered for phrase in LOW_QUALITY_PHRASES)


@dataclass
class SuggestedAnswer:
    """
    A candidate answer for a ticket.

    For knowledge base hits id is the entry id; for document hits it is
    the chunk id and question_text holds the document title.
    """
    id: str
    source: str
    question_text: str
    answer_text: str
    similarity_score: float
    confidence: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def from_knowledge_base(self) -> bool:
        return self.source == SuggestionSource.KNOWLEDGE_BASE


@dataclass
class AutoResponseResult:
    success: bool
    suggestions: List[SuggestedAnswer] = field(default_factory=list)
    error: Optional[str] = None


def merge_suggestions(*groups: List[SuggestedAnswer], limit: int) -> List[SuggestedAnswer]:
    """Most similar first across all sources, cut to limit."""
    merged = [s for group in groups for s in group]
    merged.sort(key=lambda s: s.similarity_score, reverse=True)
    return merged[:limit]


class AnswerPromptBuilder:
    """
    Builds the prompt that turns saved material into a direct answer.
    """

    PROMPT = """You are a professional teaching assistant. Your task is to answer the student's question based on information that is already available.

**IMPORTANT RULES:**
1. ONLY use information from the CONTEXT below to answer
2. DO NOT make up or add information that is not in the context
3. If the context is not sufficient, say clearly "Based on the available information..."
4. Answer professionally and in an easy-to-understand way
5. Structure the answer clearly; use bullet points if needed
6. If there are several pieces of information, combine them into a coherent answer
{course_line}
**QUESTION:** {question}

**CONTEXT (saved information):**
{context}

**ANSWER:**"""

    @classmethod
    def build_prompt(cls, question: str, context: str, course_code: Optional[str] = None) -> str:
        course_line = f"**COURSE:** {course_code}\n" if course_code else ""
        return cls.PROMPT.format(course_line=course_line, question=question, context=context)


@dataclass
class DocumentHit:
    """A course document chunk matched for a ticket."""
    id: str
    title: str
    content: str
    similarity: float
    chunk_count: int = 1
    tags: List[str] = field(default_factory=list)
