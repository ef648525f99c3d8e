"""
Knowledge External Service Adapters
=====================================

Adapters for the LLM, the knowledge question index, the documents
collection and ticket lookups.
"""

from typing import Any, List, Optional, Tuple

from eduticket.config import Visibility
from eduticket.knowledge.application import (
    ILLMClient, IKnowledgeIndex, IDocumentSearch, ITicketLookup
)
from eduticket.knowledge.domain import DocumentHit
from eduticket.infrastructure.llm import ILLMClient as InfraLLMClient, get_llm_client
from eduticket.infrastructure.vectorstore import IVectorStore, Document, quote
from eduticket.core import VectorStoreException


class LLMClientAdapter(ILLMClient):
    """Adapter exposing the infrastructure LLM client to the knowledge module."""

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


class MilvusKnowledgeIndex(IKnowledgeIndex):
    """
    IKnowledgeIndex on the knowledge collection.

    One record per current entry version, keyed by the entry id, with
    visibility and course_code as dynamic fields for filtering.
    """

    def __init__(self, vector_store: Optional[IVectorStore]):
        self._store = vector_store

    def _require_store(self) -> IVectorStore:
        if self._store is None:
            raise VectorStoreException("Knowledge index not initialized")
        return self._store

    async def add(
        self,
        entry_id: str,
        question_text: str,
        embedding: List[float],
        visibility: str,
        course_code: Optional[str]
    ) -> None:
        await self._require_store().add_documents([
            Document(
                id=entry_id,
                text=question_text,
                embedding=embedding,
                metadata={"visibility": visibility, "course_code": course_code or ""}
            )
        ])

    async def remove(self, entry_ids: List[str]) -> None:
        if not entry_ids:
            return
        ids = ", ".join(quote(i) for i in entry_ids)
        await self._require_store().delete(f"id in [{ids}]")

    async def search(
        self,
        embedding: List[float],
        top_k: int,
        threshold: float,
        course_code: Optional[str] = None
    ) -> List[Tuple[str, float]]:
        filter_expr = f"visibility == {quote(Visibility.PUBLIC)}"
        if course_code:
            filter_expr = (
                f"({filter_expr}) or (visibility == {quote(Visibility.COURSE_SPECIFIC)}"
                f" and course_code == {quote(course_code)})"
            )

        results = await self._require_store().search(
            embedding, top_k=top_k, threshold=threshold, filter_expr=filter_expr
        )
        return [(str(r.id), r.score) for r in results if r.id is not None]


class DocumentHitSearchAdapter(IDocumentSearch):
    """
    IDocumentSearch on the documents collection, exposing the chunk
    count recorded at ingestion.
    """

    def __init__(self, vector_store: Optional[IVectorStore]):
        self._store = vector_store

    async def search(self, embedding: List[float], top_k: int, threshold: float) -> List[DocumentHit]:
        if self._store is None:
            raise VectorStoreException("Vector store not initialized")

        results = await self._store.search(embedding, top_k=top_k, threshold=threshold)

        hits = []
        for r in results:
            document_metadata = r.metadata.get("metadata") or {}
            hits.append(DocumentHit(
                id=str(r.id),
                title=r.metadata.get("title") or "Untitled",
                content=r.content,
                similarity=r.score,
                chunk_count=int(document_metadata.get("total_chunks", 1)),
                tags=list(document_metadata.get("tags") or [])
            ))
        return hits


class TicketLookupAdapter(ITicketLookup):
    """Reads tickets through the tickets module's repository."""

    def __init__(self, ticket_repository: Any):
        self._tickets = ticket_repository

    async def get_by_id(self, ticket_id: str) -> Optional[Any]:
        return await self._tickets.get_by_id(ticket_id)
