"""
Vector Store Infrastructure
============================

Milvus vector store implementation for document storage and retrieval.

Two collections are used: RAG document chunks and knowledge entry
question embeddings. Both use cosine similarity, so a search score is a
similarity in [-1, 1] where higher is closer.

This module provides a clean interface for vector operations following
the Repository pattern.
"""

import json
from functools import lru_cache
from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pymilvus import MilvusClient

from eduticket.config import settings
from eduticket.core import VectorStoreException

# Upper bound Milvus accepts for query limit
MAX_QUERY_LIMIT = 16384


@dataclass
class Document:
    """Document for vector storage."""
    id: str
    text: str
    embedding: List[float]
    metadata: dict


@dataclass
class SearchResult:
    """Result from vector search."""
    content: str
    metadata: dict
    score: float
    id: Optional[str] = None


def quote(value: str) -> str:
    """Quote a string literal for a Milvus filter expression."""
    return json.dumps(value)


class IVectorStore(ABC):
    """
    Interface for vector store operations.

    Following Interface Segregation and Dependency Inversion principles.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the vector store."""

    @abstractmethod
    async def get_document_count(self) -> int:
        """Get number of records in the collection."""

    @abstractmethod
    async def add_documents(self, documents: List[Document]) -> None:
        """Add documents to the vector store."""

    @abstractmethod
    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        threshold: Optional[float] = None,
        filter_expr: str = ""
    ) -> List[SearchResult]:
        """Search for similar documents."""

    @abstractmethod
    async def query(
        self,
        filter_expr: str,
        output_fields: List[str],
        limit: int = MAX_QUERY_LIMIT
    ) -> List[Dict[str, Any]]:
        """Scalar query without a vector."""

    @abstractmethod
    async def delete(self, filter_expr: str) -> int:
        """Delete records matching a filter expression."""


class MilvusVectorStore(IVectorStore):
    """
    Zilliz Cloud (Managed Milvus) implementation of vector store.

    Uses Zilliz Cloud service for vector storage and retrieval.

    For correct connection, you need to find your cluster's Public Endpoint
    in the Zilliz Cloud Console. It should look like:
    https://inxxxxxxxxxxxxxxxxx.aws-us-west-2.vectordb-uat3.zillizcloud.com
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        uri: Optional[str] = None,
        api_key: Optional[str] = None
    ):
        self._collection_name = collection_name or settings.documents_collection_name
        self._dimension = settings.embedding_dimension
        self._client: Optional[MilvusClient] = None
        self._initialized = False
        self._uri = uri or settings.zilliz_uri
        self._api_key = api_key or settings.zilliz_api_key

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def initialize(self) -> None:
        """Initialize Zilliz Cloud client and collection."""
        if self._initialized:
            return

        if not self._uri:
            raise VectorStoreException("ZILLIZ_URI not configured")
        if not self._api_key:
            raise VectorStoreException("ZILLIZ_API_KEY not configured")

        try:
            self._client = MilvusClient(
                uri=self._uri,
                token=self._api_key
            )

            # Quick-setup collection: string primary key, dynamic fields on
            if not self._client.has_collection(self._collection_name):
                self._client.create_collection(
                    collection_name=self._collection_name,
                    dimension=self._dimension,
                    primary_field_name="id",
                    id_type="string",
                    max_length=64,
                    vector_field_name="vector",
                    metric_type="COSINE",
                    auto_id=False
                )

            self._initialized = True

        except Exception as e:
            raise VectorStoreException(f"Failed to initialize Milvus: {str(e)}")

    async def _ensure_client(self) -> MilvusClient:
        if not self._initialized:
            await self.initialize()
        if not self._client:
            raise VectorStoreException("Vector store not initialized")
        return self._client

    async def get_document_count(self) -> int:
        """Get number of records in the collection."""
        client = await self._ensure_client()

        try:
            res = client.query(
                collection_name=self._collection_name,
                filter="",
                output_fields=["count(*)"]
            )
            return int(res[0]["count(*)"]) if res else 0
        except Exception as e:
            raise VectorStoreException(f"Count failed: {str(e)}")

    async def add_documents(self, documents: List[Document]) -> None:
        """
        Add documents to the vector store.

        Metadata keys are stored as dynamic fields next to the text.

        Args:
            documents: List of Document objects with embeddings

        Raises:
            VectorStoreException: If add operation fails
        """
        if not documents:
            return

        client = await self._ensure_client()

        try:
            data = [
                {
                    **doc.metadata,
                    "id": doc.id,
                    "vector": doc.embedding,
                    "text": doc.text,
                }
                for doc in documents
            ]

            client.insert(
                collection_name=self._collection_name,
                data=data
            )

        except Exception as e:
            raise VectorStoreException(f"Failed to add documents: {str(e)}")

    async def search(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        threshold: Optional[float] = None,
        filter_expr: str = ""
    ) -> List[SearchResult]:
        """
        Search for similar documents.

        Args:
            query_embedding: Query vector
            top_k: Number of results to return
            threshold: Minimum similarity a hit must reach
            filter_expr: Optional Milvus boolean expression

        Returns:
            List of SearchResult objects, most similar first

        Raises:
            VectorStoreException: If search fails
        """
        client = await self._ensure_client()

        try:
            results = client.search(
                collection_name=self._collection_name,
                data=[query_embedding],
                limit=top_k,
                filter=filter_expr,
                output_fields=["*"]
            )
        except Exception as e:
            raise VectorStoreException(f"Search failed: {str(e)}")

        formatted_results = []
        if results and len(results) > 0:
            for hit in results[0]:
                score = float(hit["distance"])
                if threshold is not None and score < threshold:
                    continue
                entity = dict(hit.get("entity", {}))
                entity.pop("vector", None)
                content = entity.pop("text", "")
                formatted_results.append(SearchResult(
                    content=content,
                    metadata=entity,
                    score=score,
                    id=hit.get("id")
                ))

        return formatted_results

    async def query(
        self,
        filter_expr: str,
        output_fields: List[str],
        limit: int = MAX_QUERY_LIMIT
    ) -> List[Dict[str, Any]]:
        """Scalar query returning raw entity dicts."""
        client = await self._ensure_client()

        try:
            return client.query(
                collection_name=self._collection_name,
                filter=filter_expr,
                output_fields=output_fields,
                limit=limit
            )
        except Exception as e:
            raise VectorStoreException(f"Query failed: {str(e)}")

    async def delete(self, filter_expr: str) -> int:
        """
        Delete records matching a filter expression.

        Args:
            filter_expr: Milvus boolean expression, e.g. 'title == "Syllabus"'

        Returns:
            Number of records deleted
        """
        client = await self._ensure_client()

        try:
            res = client.delete(
                collection_name=self._collection_name,
                filter=filter_expr
            )
        except Exception as e:
            raise VectorStoreException(f"Delete failed: {str(e)}")

        if isinstance(res, dict):
            return int(res.get("delete_count", 0))
        return len(res or [])


@lru_cache()
def get_collection_store(collection_name: str) -> MilvusVectorStore:
    """
    Shared store for one collection.

    Nothing connects here; the client is created on first use and a
    failed connection is retried on the next call.
    """
    return MilvusVectorStore(collection_name=collection_name)
