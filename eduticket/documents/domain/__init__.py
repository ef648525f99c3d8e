"""
Documents Domain Layer
======================

Contains:
- chunk_text: boundary-aware overlapping chunker
- Entities: DocumentChunk, DocumentSummary, DocumentStats
"""

from eduticket.documents.domain.entities import (
    chunk_text,
    summarize_chunks,
    compute_stats,
    DocumentChunk,
    DocumentSummary,
    DocumentStats,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNK_OVERLAP,
)

__all__ = [
    "chunk_text",
    "summarize_chunks",
    "compute_stats",
    "DocumentChunk",
    "DocumentSummary",
    "DocumentStats",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
]
