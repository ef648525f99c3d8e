"""
Documents Application DTOs
===========================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DocumentIngestRequest(BaseModel):
    """Request model for uploading a document."""
    title: str = Field(..., min_length=1, max_length=500, description="Document title, used as citation")
    content: str = Field(..., description="Plain text or markdown content")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DocumentIngestResponse(BaseModel):
    title: str
    chunks_created: int


class DocumentSummaryResponse(BaseModel):
    title: str
    chunk_count: int
    last_updated: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DocumentListResponse(BaseModel):
    documents: List[DocumentSummaryResponse]
    count: int


class DocumentStatsResponse(BaseModel):
    total_documents: int = Field(..., description="Unique document titles")
    total_chunks: int
    total_size: int = Field(..., description="Sum of chunk sizes in characters")


class DocumentDeleteResponse(BaseModel):
    title: str
    chunks_deleted: int
