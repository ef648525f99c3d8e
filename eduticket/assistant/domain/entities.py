"""
Assistant Domain Entities
=========================

Domain entities for the RAG chat assistant.

Contains pure Python business objects and prompt building.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from eduticket.core import ValidationException


@dataclass(frozen=True)
class ChatQuery:
    """
    A student's question.

    The text is trimmed and cut to the maximum length on construction
    via from_raw.
    """
    text: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_raw(
        cls,
        query: Any,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        max_length: int = 1000
    ) -> "ChatQuery":
        """
        Raises:
            ValidationException: If the query is missing or blank
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationException("Query is required")

        return cls(
            text=query.strip()[:max_length],
            session_id=session_id or None,
            user_id=user_id or None
        )

    @property
    def persists_history(self) -> bool:
        """Messages are stored only when both the session and the user are known."""
        return bool(self.session_id and self.user_id)


@dataclass
class RetrievedDocument:
    """A document chunk returned by similarity search."""
    title: str
    content: str
    similarity: float


@dataclass
class SourceReference:
    """Document cited in an answer."""
    title: str
    similarity: float

    def rounded(self) -> "SourceReference":
        return SourceReference(title=self.title, similarity=round(self.similarity, 2))


@dataclass
class ChatAnswer:
    """
    Result of a RAG chat turn.

    sources keep full-precision similarities; rounding happens at the API
    boundary.
    """
    response: str
    sources: List[SourceReference]
    has_context: bool
    latency_ms: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RAGPromptBuilder:
    """
    Builds the assistant system prompt.

    All prompt text lives here.
    """

    NO_CONTEXT = "No relevant documents were found."

    FALLBACK_ANSWER = (
        "Sorry, I don't have information about this in the current documents yet. "
        "You can create a ticket to get direct support from an instructor or teaching assistant."
    )

    SEPARATOR = "\n\n---\n\n"

    SYSTEM_PROMPT = """You are the AI Learning Assistant of {institution}, part of the EduTicket AI system.
Your task is to answer student questions based ENTIRELY on the content in the "Context" section below.

IMPORTANT RULES:
- ONLY use information from the provided Context
- DO NOT infer or add information outside the Context
- If the Context has no suitable information, answer: "{fallback}"
- Answer clearly and in a friendly tone
- If the Context contains code, explain it in detail
- Cite the document titles when answering so students know where the information comes from

Context:
{context}"""

    @classmethod
    def build_context(cls, documents: List[RetrievedDocument]) -> str:
        """Join documents as "[title]\\ncontent" blocks."""
        if not documents:
            return cls.NO_CONTEXT
        return cls.SEPARATOR.join(f"[{d.title}]\n{d.content}" for d in documents)

    @classmethod
    def build_system_prompt(cls, context: str, institution: str) -> str:
        return cls.SYSTEM_PROMPT.format(
            institution=institution,
            fallback=cls.FALLBACK_ANSWER,
            context=context
        )
