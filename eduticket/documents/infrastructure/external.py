"""
Documents External Service Adapters
=====================================

Adapters for batch embedding and the documents vector collection.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from eduticket.documents.application import IEmbedder, IChunkStore
from eduticket.documents.domain import DocumentChunk
from eduticket.infrastructure.llm import (
    ILLMClient, get_llm_client, generate_batch_embeddings, validate_embedding
)
from eduticket.infrastructure.vectorstore import IVectorStore, Document, quote
from eduticket.core import EmbeddingException

CHUNK_FIELDS = ["title", "chunk_index", "metadata", "updated_at"]


class BatchEmbedderAdapter(IEmbedder):
    """
    Embeds texts in small concurrent batches with a pause in between,
    staying under the embedding API's rate limit.
    """

    def __init__(
        self,
        client: Optional[ILLMClient] = None,
        batch_size: Optional[int] = None,
        delay_seconds: Optional[float] = None
    ):
        self._client = client
        self._batch_size = batch_size
        self._delay_seconds = delay_seconds

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if self._client is None:
            self._client = get_llm_client()
        embeddings = await generate_batch_embeddings(
            self._client, texts, self._batch_size, self._delay_seconds
        )
        for embedding in embeddings:
            if not validate_embedding(embedding):
                raise EmbeddingException(
                    f"Unexpected embedding dimension: {len(embedding)}"
                )
        return embeddings


class MilvusChunkStore(IChunkStore):
    """
    IChunkStore on the documents collection.

    Each chunk is one record: id, vector, text plus dynamic fields
    title, chunk_index, metadata and updated_at.
    """

    def __init__(self, vector_store: IVectorStore):
        self._store = vector_store

    async def add_chunks(self, chunks: List[DocumentChunk]) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        documents = [
            Document(
                id=str(uuid.uuid4()),
                text=chunk.content,
                embedding=chunk.embedding,
                metadata={
                    "title": chunk.title,
                    "chunk_index": chunk.chunk_index,
                    "metadata": chunk.metadata,
                    "updated_at": updated_at
                }
            )
            for chunk in chunks
        ]
        await self._store.add_documents(documents)

    async def list_chunk_rows(self) -> List[Dict[str, Any]]:
        rows = await self._store.query(filter_expr="", output_fields=CHUNK_FIELDS)
        return sorted(rows, key=lambda r: r.get("updated_at") or "", reverse=True)

    async def delete_by_title(self, title: str) -> int:
        return await self._store.delete(f"title == {quote(title)}")
