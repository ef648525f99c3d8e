"""
Tests for document chunking and ingestion into the RAG corpus.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from eduticket.core import ValidationException, VectorStoreException
from eduticket.documents.application import DocumentIngestionService
from eduticket.documents.domain import chunk_text, compute_stats, summarize_chunks
from eduticket.documents.infrastructure import BatchEmbedderAdapter, MilvusChunkStore
from eduticket.infrastructure.vectorstore import MilvusVectorStore, SearchResult, get_collection_store


# ========== Chunking ==========

def test_short_text_is_one_chunk():
    assert chunk_text("  A short note.  ") == ["A short note."]


def test_blank_text_has_no_chunks():
    assert chunk_text("") == []
    assert chunk_text(" \n\t ") == []


def test_overlap_must_be_smaller_than_size():
    with pytest.raises(ValueError):
        chunk_text("abc", chunk_size=100, chunk_overlap=100)


def test_chunks_overlap_and_cover_text():
    text = "".join(chr(ord("a") + i % 26) for i in range(2500))

    chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

    assert [len(c) for c in chunks] == [1000, 1000, 900]
    assert chunks[0][-200:] == chunks[1][:200]
    assert chunks[-1].endswith(text[-100:])


def test_chunk_prefers_paragraph_break():
    first = "word " * 150
    text = first.strip() + "\n\n" + "next " * 200

    chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

    assert chunks[0] == first.strip()


def test_break_in_first_half_is_ignored():
    text = "intro\n\n" + "x" * 1500

    chunks = chunk_text(text, chunk_size=1000, chunk_overlap=200)

    assert len(chunks[0]) == 1000


def test_summaries_group_by_title():
    rows = [
        {"title": "Handbook", "updated_at": "2025-02-01", "metadata": {"chunk_size": 900}},
        {"title": "Handbook", "updated_at": "2025-01-01", "metadata": {"chunk_size": 300}},
        {"title": "Syllabus", "updated_at": "2025-01-15", "metadata": {"chunk_size": 100}},
    ]

    summaries = summarize_chunks(rows)

    assert [(s.title, s.chunk_count, s.last_updated) for s in summaries] == [
        ("Handbook", 2, "2025-02-01"),
        ("Syllabus", 1, "2025-01-15"),
    ]

    stats = compute_stats(rows)
    assert (stats.total_documents, stats.total_chunks, stats.total_size) == (2, 3, 1300)


# ========== Ingestion service ==========

def _service(store_rows=None):
    embedder = MagicMock()
    embedder.embed_many = AsyncMock(side_effect=lambda texts: [[0.0] * 3 for _ in texts])
    store = MagicMock()
    store.add_chunks = AsyncMock()
    store.list_chunk_rows = AsyncMock(return_value=store_rows or [])
    store.delete_by_title = AsyncMock(return_value=4)
    return DocumentIngestionService(embedder, store), embedder, store


@pytest.mark.asyncio
async def test_ingest_adds_chunk_metadata():
    service, embedder, store = _service()

    count = await service.ingest(" Handbook ", "x" * 1500, {"course_code": "CS101"})

    assert count == 2
    chunks = store.add_chunks.call_args.args[0]
    assert [c.chunk_index for c in chunks] == [0, 1]
    assert chunks[0].title == "Handbook"
    assert chunks[0].metadata == {"course_code": "CS101", "total_chunks": 2, "chunk_size": 1000}
    assert chunks[1].metadata["chunk_size"] == 700


@pytest.mark.asyncio
async def test_ingest_requires_title_and_content():
    service, _, store = _service()

    with pytest.raises(ValidationException, match="Title is required"):
        await service.ingest("  ", "text")
    with pytest.raises(ValidationException, match="No valid chunks generated from document"):
        await service.ingest("Empty", "   ")
    store.add_chunks.assert_not_awaited()


@pytest.mark.asyncio
async def test_statistics_are_zero_when_store_fails():
    service, _, store = _service()
    store.list_chunk_rows = AsyncMock(side_effect=VectorStoreException("offline"))

    stats = await service.get_statistics()

    assert (stats.total_documents, stats.total_chunks, stats.total_size) == (0, 0, 0)


@pytest.mark.asyncio
async def test_batch_embedder_uses_client(monkeypatch):
    client = MagicMock()
    client.generate_embedding = AsyncMock(side_effect=lambda text: MagicMock(embedding=[0.5] * 768))
    monkeypatch.setattr("eduticket.documents.infrastructure.external.validate_embedding", lambda e: True)

    embeddings = await BatchEmbedderAdapter(client, batch_size=2, delay_seconds=0).embed_many(["a", "b", "c"])

    assert len(embeddings) == 3
    assert client.generate_embedding.await_count == 3


@pytest.mark.asyncio
async def test_chunk_store_deletes_by_quoted_title():
    vector_store = MagicMock()
    vector_store.delete = AsyncMock(return_value=2)

    deleted = await MilvusChunkStore(vector_store).delete_by_title('Week "1" notes')

    assert deleted == 2
    vector_store.delete.assert_awaited_once_with('title == "Week \\"1\\" notes"')


# ========== API ==========

def test_documents_api_without_vector_store(client):
    response = client.get("/documents")

    assert response.status_code == 503
    assert response.json()["detail"] == "Vector store not initialized"


def test_documents_api_lists_store_rows(client):
    store = MagicMock()
    store.query = AsyncMock(return_value=[
        {"title": "Handbook", "chunk_index": 0, "metadata": {"chunk_size": 10}, "updated_at": "2025-01-01"},
    ])
    client.app.state.documents_store = store

    body = client.get("/documents").json()

    assert body["count"] == 1
    assert body["documents"][0]["title"] == "Handbook"


# ========== Vector store connection ==========

def test_collection_store_is_shared_and_unconnected():
    store = get_collection_store("rag_documents")

    assert get_collection_store("rag_documents") is store
    assert store.collection_name == "rag_documents"


@pytest.mark.asyncio
async def test_vector_store_retries_failed_connection():
    milvus = MagicMock()
    milvus.has_collection.return_value = True
    milvus.query.return_value = [{"count(*)": 3}]
    store = MilvusVectorStore("rag_documents", uri="https://milvus.example", api_key="key")

    with patch("eduticket.infrastructure.vectorstore.MilvusClient", side_effect=[RuntimeError("down"), milvus]):
        with pytest.raises(VectorStoreException, match="Failed to initialize Milvus: down"):
            await store.get_document_count()

        assert await store.get_document_count() == 3
