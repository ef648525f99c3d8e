"""
Tests for the document ingestion command line script.
"""
import importlib.util
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "ingest_documents.py"


@pytest.fixture
def ingest():
    spec = importlib.util.spec_from_file_location("ingest_documents", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def store():
    store = MagicMock()
    store.initialize = AsyncMock()
    store.add_documents = AsyncMock()
    store.query = AsyncMock(return_value=[])
    store.delete = AsyncMock(return_value=0)
    return store


@pytest.fixture
def embedder():
    embedder = MagicMock()
    embedder.embed_many = AsyncMock(side_effect=lambda texts: [[0.1, 0.2] for _ in texts])
    return embedder


@pytest.fixture
def patched(ingest, store, embedder, monkeypatch):
    monkeypatch.setattr(ingest, "MilvusVectorStore", lambda collection_name: store)
    monkeypatch.setattr(ingest, "BatchEmbedderAdapter", lambda: embedder)
    return ingest


def _stored_titles(store):
    return {
        document.metadata["title"]
        for call in store.add_documents.await_args_list
        for document in call.args[0]
    }


@pytest.mark.parametrize("name, content, title", [
    ("week1.md", "# Week 1 Notes\n\nRead chapter one.", "Week 1 Notes"),
    ("week1.md", "\n\n# Padded Heading\nBody", "Padded Heading"),
    ("lab_guide-v2.txt", "Plain text without a heading.", "lab guide v2"),
    ("empty.md", "", "empty"),
])
def test_document_title(ingest, name, content, title):
    assert ingest.document_title(Path(name), content) == title


@pytest.mark.asyncio
async def test_ingests_only_text_and_markdown(patched, store, tmp_path):
    (tmp_path / "notes.md").write_text("# Week 1 Notes\n\nRead chapter one.", encoding="utf-8")
    (tmp_path / "syllabus.txt").write_text("Late work loses ten percent per day.", encoding="utf-8")
    (tmp_path / "diagram.png").write_bytes(b"\x89PNG")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "lab_guide.md").write_text("Bring a laptop.", encoding="utf-8")

    result = await patched.main(tmp_path, course_code="CS101")

    assert result == 0
    store.initialize.assert_awaited_once()
    assert _stored_titles(store) == {"Week 1 Notes", "syllabus", "lab guide"}
    first = store.add_documents.await_args_list[0].args[0][0]
    assert first.metadata["metadata"]["course_code"] == "CS101"
    assert first.metadata["metadata"]["source_file"] == "notes.md"
    store.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_replace_deletes_existing_chunks_first(patched, store, tmp_path):
    (tmp_path / "faq.md").write_text("Office hours are on Monday.", encoding="utf-8")

    await patched.main(tmp_path, replace=True)

    store.delete.assert_awaited_once_with('title == "faq"')


@pytest.mark.asyncio
async def test_failed_document_sets_exit_code(patched, store, tmp_path):
    (tmp_path / "blank.md").write_text("   ", encoding="utf-8")
    (tmp_path / "ok.txt").write_text("Labs start in week two.", encoding="utf-8")

    result = await patched.main(tmp_path)

    assert result == 1
    assert _stored_titles(store) == {"ok"}
