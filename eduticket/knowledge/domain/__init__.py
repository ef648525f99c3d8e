"""
Knowledge Domain Layer
======================

Contains:
- Entities: KnowledgeEntryInput, KnowledgeEntryUpdate, StatisticsUpdate,
  SuggestedAnswer, AutoResponseResult
- Rules: validation, sanitizing, confidence levels, answer quality
- Prompt building: AnswerPromptBuilder

This layer is framework-agnostic and contains pure business logic.
"""

from eduticket.knowledge.domain.entities import (
    KnowledgeEntryInput,
    KnowledgeEntryUpdate,
    StatisticsUpdate,
    SuggestedAnswer,
    AutoResponseResult,
    AnswerPromptBuilder,
    DocumentHit,
    sanitize_tags,
    normalize_course_code,
    check_visibility,
    check_lengths,
    calculate_confidence,
    is_quality_answer,
    merge_suggestions,
    MAX_QUESTION_LENGTH,
    MAX_ANSWER_LENGTH,
    MAX_TAGS,
    MAX_TAG_LENGTH,
)

__all__ = [
    "KnowledgeEntryInput",
    "KnowledgeEntryUpdate",
    "StatisticsUpdate",
    "SuggestedAnswer",
    "AutoResponseResult",
    "AnswerPromptBuilder",
    "DocumentHit",
    "sanitize_tags",
    "normalize_course_code",
    "check_visibility",
    "check_lengths",
    "calculate_confidence",
    "is_quality_answer",
    "merge_suggestions",
    "MAX_QUESTION_LENGTH",
    "MAX_ANSWER_LENGTH",
    "MAX_TAGS",
    "MAX_TAG_LENGTH",
]
