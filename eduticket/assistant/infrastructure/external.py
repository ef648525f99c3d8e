"""
Assistant External Service Adapters
=====================================

Adapters for the LLM and the documents vector collection.
"""

from typing import Any, List, Optional

from eduticket.assistant.application import ILLMClient, IDocumentSearch
from eduticket.assistant.domain import RetrievedDocument
from eduticket.infrastructure.llm import ILLMClient as InfraLLMClient, get_llm_client
from eduticket.infrastructure.vectorstore import IVectorStore
from eduticket.core import VectorStoreException


class LLMClientAdapter(ILLMClient):
    """Adapter exposing the infrastructure LLM client to the assistant."""

    def __init__(self, client: Optional[InfraLLMClient] = None):
        self._client = client or get_llm_client()

    async def generate_embedding(self, text: str) -> Any:
        return await self._client.generate_embedding(text)

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> Any:
        return await self._client.chat_completion(messages, temperature, max_tokens, operation, top_p)


class DocumentSearchAdapter(IDocumentSearch):
    """
    Adapter implementing IDocumentSearch on the documents collection.
    """

    def __init__(self, vector_store: Optional[IVectorStore]):
        self._store = vector_store

    async def search(
        self,
        embedding: List[float],
        top_k: int,
        threshold: float
    ) -> List[RetrievedDocument]:
        if self._store is None:
            raise VectorStoreException("Vector store not initialized")

        results = await self._store.search(embedding, top_k=top_k, threshold=threshold)
        return [
            RetrievedDocument(
                title=r.metadata.get("title") or "Untitled",
                content=r.content,
                similarity=r.score
            )
            for r in results
        ]
