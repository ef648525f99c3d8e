"""
Documents Controllers (API Routes)
===================================

FastAPI routes for managing the RAG document corpus.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from eduticket.documents.application import (
    DocumentIngestionService,
    DocumentIngestRequest, DocumentIngestResponse,
    DocumentSummaryResponse, DocumentListResponse,
    DocumentStatsResponse, DocumentDeleteResponse
)
from eduticket.documents.infrastructure import BatchEmbedderAdapter, MilvusChunkStore
from eduticket.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)
router = APIRouter(prefix="/documents", tags=["Documents"])


INGEST_REQUEST_EXAMPLE = {
    "title": "Course Handbook",
    "content": "Assignments are submitted through the course page...",
    "metadata": {"course_code": "CS101", "source_file": "handbook.md"}
}


# ========== Dependencies ==========

async def get_vector_store(request: Request):
    """Get the documents vector store from app state."""
    store = getattr(request.app.state, "documents_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vector store not initialized"
        )
    return store


async def get_ingestion_service(
    vector_store=Depends(get_vector_store)
) -> DocumentIngestionService:
    """The embedder connects to the LLM lazily, so listing works without it."""
    return DocumentIngestionService(BatchEmbedderAdapter(), MilvusChunkStore(vector_store))


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=DocumentIngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a document",
    description="""
    Chunk a document (1000 characters, 200 overlap), embed every chunk and
    store it in the documents collection. Each chunk's metadata is extended
    with `total_chunks` and `chunk_size`.
    """,
    responses={
        422: {"description": "No valid chunks generated from document"},
        503: {"description": "Vector store or LLM not available"}
    }
)
async def ingest_document(
    request: Request,
    payload: DocumentIngestRequest,
    service: DocumentIngestionService = Depends(get_ingestion_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    with log_latency(logger, "document_ingestion", correlation_id=correlation_id, title=payload.title):
        chunks_created = await service.ingest(payload.title, payload.content, payload.metadata)

    return DocumentIngestResponse(title=payload.title.strip(), chunks_created=chunks_created)


@router.get("", response_model=DocumentListResponse, summary="List documents grouped by title")
async def list_documents(service: DocumentIngestionService = Depends(get_ingestion_service)):
    documents = await service.list_documents()
    return DocumentListResponse(
        documents=[
            DocumentSummaryResponse(
                title=d.title,
                chunk_count=d.chunk_count,
                last_updated=d.last_updated,
                metadata=d.metadata
            )
            for d in documents
        ],
        count=len(documents)
    )


@router.get("/stats", response_model=DocumentStatsResponse, summary="Corpus statistics")
async def get_document_stats(service: DocumentIngestionService = Depends(get_ingestion_service)):
    stats = await service.get_statistics()
    return DocumentStatsResponse(
        total_documents=stats.total_documents,
        total_chunks=stats.total_chunks,
        total_size=stats.total_size
    )


@router.delete("/{title}", response_model=DocumentDeleteResponse, summary="Delete every chunk of a document")
async def delete_document(
    title: str,
    service: DocumentIngestionService = Depends(get_ingestion_service)
):
    deleted = await service.delete_document(title)
    return DocumentDeleteResponse(title=title, chunks_deleted=deleted)


# Export router for inclusion in main app
documents_router = router
