"""
Triage External Service Adapters
==================================

Adapter for the LLM used by the triage module.

Implements the interface defined in the application layer using the
configured infrastructure LLM client.
"""

from typing import List, Any, Optional

from eduticket.triage.application import ILLMClient
from eduticket.infrastructure.llm import ILLMClient as InfraLLMClient, get_llm_client


class LLMClientAdapter(ILLMClient):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer ILLMClient interface using
    the Gemini client, or the mock client when mock mode is on.
    """

    def __init__(self, client: Optional[InfraLLMClient] = None):
        self._client = client or get_llm_client()

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> Any:
        """Generate chat completion."""
        return await self._client.chat_completion(
            messages, temperature, max_tokens, operation, top_p
        )
