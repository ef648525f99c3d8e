"""
Triage Application Services
============================

Application service for AI ticket triage.

Orchestrates prompt building, the LLM call and answer parsing.
"""

import time
from typing import Any, List, Optional
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from eduticket.triage.domain import (
    TriageRequest, TriageSuggestion, TriagePromptBuilder, parse_type_and_priority
)
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ILLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> Any:
        """Generate chat completion."""


class TriageService:
    """
    Service for ticket triage using the LLM.

    Suggests a type and priority; never persists anything.
    """

    def __init__(self, llm_client: ILLMClient):
        self._llm = llm_client

    async def suggest(self, request: TriageRequest) -> TriageSuggestion:
        """
        Suggest a type and priority for a ticket.

        Args:
            request: Validated ticket text

        Returns:
            TriageSuggestion with parsed type and priority

        Raises:
            LLMException: If the LLM call fails or times out
        """
        start_time = time.perf_counter()

        logger.info(
            "Processing ticket triage request",
            extra={"title_preview": request.title[:50], "ticket_type": request.type}
        )

        messages = [
            {"role": "system", "content": TriagePromptBuilder.get_system_prompt()},
            {"role": "user", "content": TriagePromptBuilder.build_prompt(request)}
        ]

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=0.3,
            max_tokens=10,
            operation="triage"
        )

        suggested_type, suggested_priority = parse_type_and_priority(response.content)

        suggestion = TriageSuggestion(
            suggested_type=suggested_type,
            suggested_priority=suggested_priority,
            model_used=response.model,
            latency_ms=int((time.perf_counter() - start_time) * 1000),
            processed_at=datetime.now(timezone.utc)
        )

        logger.info(
            "AI triage completed",
            extra={
                "suggested_type": suggested_type,
                "suggested_priority": suggested_priority,
                "latency_ms": suggestion.latency_ms
            }
        )
        return suggestion
