"""
Documents Infrastructure Layer
===============================

Contains:
- External: batch embedder and Milvus chunk store adapters
"""

from eduticket.documents.infrastructure.external import BatchEmbedderAdapter, MilvusChunkStore

__all__ = ["BatchEmbedderAdapter", "MilvusChunkStore"]
