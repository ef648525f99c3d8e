"""
Documents Application Services
===============================

Application service for ingesting course documents into the RAG corpus.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from eduticket.config import settings
from eduticket.core import ValidationException, VectorStoreException
from eduticket.documents.domain import (
    DocumentChunk, DocumentStats, DocumentSummary,
    chunk_text, compute_stats, summarize_chunks
)
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Interfaces (Dependency Inversion) ==========

class IEmbedder(ABC):
    """Interface for embedding many texts."""

    @abstractmethod
    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed texts, preserving order."""


class IChunkStore(ABC):
    """Interface for the document chunk collection."""

    @abstractmethod
    async def add_chunks(self, chunks: List[DocumentChunk]) -> None:
        """Store embedded chunks."""

    @abstractmethod
    async def list_chunk_rows(self) -> List[Dict[str, Any]]:
        """Get title, metadata and updated_at of every chunk, newest first."""

    @abstractmethod
    async def delete_by_title(self, title: str) -> int:
        """Delete every chunk of a document; returns the number removed."""


# ========== Application Services ==========

class DocumentIngestionService:
    """
    Service for processing documents: chunk, embed and upload.
    """

    def __init__(self, embedder: IEmbedder, store: IChunkStore):
        self._embedder = embedder
        self._store = store

    async def ingest(
        self,
        title: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Chunk, embed and store one document.

        Returns:
            Number of chunks stored

        Raises:
            ValidationException: If the title is blank or nothing can be chunked
            EmbeddingException, VectorStoreException: On service failures
        """
        title = (title or "").strip()
        if not title:
            raise ValidationException("Title is required")

        chunks = chunk_text(content, settings.chunk_size, settings.chunk_overlap)
        if not chunks:
            raise ValidationException("No valid chunks generated from document")

        logger.info("Processing document", extra={"title": title, "chunks": len(chunks)})

        embeddings = await self._embedder.embed_many(chunks)

        metadata = metadata or {}
        document_chunks = [
            DocumentChunk(
                title=title,
                content=chunk,
                chunk_index=index,
                metadata={**metadata, "total_chunks": len(chunks), "chunk_size": len(chunk)},
                embedding=embedding
            )
            for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
        ]

        await self._store.add_chunks(document_chunks)

        logger.info("Document ingested", extra={"title": title, "chunks": len(document_chunks)})
        return len(document_chunks)

    async def list_documents(self) -> List[DocumentSummary]:
        rows = await self._store.list_chunk_rows()
        return summarize_chunks(rows)

    async def get_statistics(self) -> DocumentStats:
        """Corpus totals; zeros when the collection cannot be read."""
        try:
            rows = await self._store.list_chunk_rows()
        except VectorStoreException as e:
            logger.error("Error getting document statistics", extra={"error": e.message})
            return DocumentStats()
        return compute_stats(rows)

    async def delete_document(self, title: str) -> int:
        deleted = await self._store.delete_by_title(title)
        logger.info("Document deleted", extra={"title": title, "chunks_deleted": deleted})
        return deleted
