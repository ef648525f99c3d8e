"""
Documents Application Layer
============================

Contains:
- Services: DocumentIngestionService
- Interfaces: IEmbedder, IChunkStore
- DTOs: Request/Response models
"""

from eduticket.documents.application.dto import (
    DocumentIngestRequest,
    DocumentIngestResponse,
    DocumentSummaryResponse,
    DocumentListResponse,
    DocumentStatsResponse,
    DocumentDeleteResponse,
)
from eduticket.documents.application.services import (
    IEmbedder,
    IChunkStore,
    DocumentIngestionService,
)

__all__ = [
    "DocumentIngestRequest",
    "DocumentIngestResponse",
    "DocumentSummaryResponse",
    "DocumentListResponse",
    "DocumentStatsResponse",
    "DocumentDeleteResponse",
    "IEmbedder",
    "IChunkStore",
    "DocumentIngestionService",
]
