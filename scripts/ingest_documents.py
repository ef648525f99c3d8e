#!/usr/bin/env python3
"""
Ingest Course Documents
=======================

Chunks, embeds and uploads every .txt / .md file of a directory into the
documents collection. The document title is the file name without its
extension unless the file starts with a "# " heading.
"""

import argparse
import asyncio
from pathlib import Path
from typing import Optional

from eduticket.config import settings
from eduticket.core import ApplicationException
from eduticket.documents.application import DocumentIngestionService
from eduticket.documents.infrastructure import BatchEmbedderAdapter, MilvusChunkStore
from eduticket.infrastructure.vectorstore import MilvusVectorStore
from eduticket.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)

EXTENSIONS = {".txt", ".md"}


def document_title(path: Path, content: str) -> str:
    first_line = content.lstrip().splitlines()[0] if content.strip() else ""
    if first_line.startswith("# "):
        return first_line[2:].strip()
    return path.stem.replace("_", " ").replace("-", " ").strip()


async def main(directory: Path, course_code: Optional[str] = None, replace: bool = False) -> int:
    setup_logging()

    store = MilvusVectorStore(collection_name=settings.documents_collection_name)
    await store.initialize()
    service = DocumentIngestionService(BatchEmbedderAdapter(), MilvusChunkStore(store))

    files = sorted(p for p in directory.rglob("*") if p.suffix.lower() in EXTENSIONS)
    print(f"Found {len(files)} documents in {directory}")

    failures = 0
    for path in files:
        content = path.read_text(encoding="utf-8")
        title = document_title(path, content)
        metadata = {"source_file": path.name}
        if course_code:
            metadata["course_code"] = course_code

        try:
            if replace:
                await service.delete_document(title)
            chunks = await service.ingest(title, content, metadata)
        except ApplicationException as e:
            failures += 1
            logger.error("Failed to ingest document", extra={"file": str(path), "error": e.message})
            print(f"  FAILED  {path.name}: {e.message}")
            continue

        print(f"  OK      {path.name} -> '{title}' ({chunks} chunks)")

    stats = await service.get_statistics()
    print(f"\nCollection now holds {stats.total_documents} documents / {stats.total_chunks} chunks")
    return 1 if failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest .txt/.md documents into the RAG corpus")
    parser.add_argument("directory", type=Path, help="Directory to scan recursively")
    parser.add_argument("--course-code", help="Course code stored in each chunk's metadata")
    parser.add_argument("--replace", action="store_true", help="Delete existing chunks with the same title first")
    args = parser.parse_args()

    raise SystemExit(asyncio.run(main(args.directory, args.course_code, args.replace)))
