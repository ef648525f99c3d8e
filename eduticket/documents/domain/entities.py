"""
Documents Domain Entities
=========================

Text chunking and document bookkeeping for the RAG corpus.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
) -> List[str]:
    """
    Split text into overlapping chunks for embedding.

    A window prefers to end on a paragraph break, then a line break, then
    a sentence break, as long as the break lies in the second half of the
    window. The next window starts chunk_overlap characters before the
    previous end.

    Args:
        text: Text to chunk
        chunk_size: Target chunk size in characters
        chunk_overlap: Overlap between chunks

    Returns:
        Stripped, non-empty chunks in document order
    """
    if not text or not text.strip():
        return []
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be smaller than chunk_size")

    text = text.strip()
    chunks = []
    start = 0
    text_length = len(text)
    min_break = chunk_size // 2

    while start < text_length:
        end = start + chunk_size

        if end < text_length:
            for separator in ("\n\n", "\n", ". "):
                position = text.rfind(separator, start, end)
                if position > start + min_break:
                    end = position + len(separator)
                    break

        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)

        if end >= text_length:
            break
        # Always advance, even when a break lands close to the window start
        start = max(end - chunk_overlap, start + 1)

    return chunks


@dataclass
class DocumentChunk:
    """One embedded piece of a document."""
    title: str
    content: str
    chunk_index: int
    metadata: Dict[str, Any]
    embedding: List[float] = field(default_factory=list)


@dataclass
class DocumentSummary:
    """A document as listed to administrators (chunks grouped by title)."""
    title: str
    chunk_count: int
    last_updated: Optional[str]
    metadata: Dict[str, Any]


@dataclass
class DocumentStats:
    total_documents: int = 0
    total_chunks: int = 0
    total_size: int = 0


def summarize_chunks(rows: Iterable[Dict[str, Any]]) -> List[DocumentSummary]:
    """
    Group stored chunk rows by title.

    Rows are expected newest first; the first row of each title supplies
    last_updated and metadata.
    """
    summaries: Dict[str, DocumentSummary] = {}
    for row in rows:
        title = row.get("title") or "Untitled"
        if title in summaries:
            summaries[title].chunk_count += 1
        else:
            summaries[title] = DocumentSummary(
                title=title,
                chunk_count=1,
                last_updated=row.get("updated_at"),
                metadata=row.get("metadata") or {}
            )
    return list(summaries.values())


def compute_stats(rows: Iterable[Dict[str, Any]]) -> DocumentStats:
    titles = set()
    stats = DocumentStats()
    for row in rows:
        titles.add(row.get("title"))
        stats.total_chunks += 1
        stats.total_size += int((row.get("metadata") or {}).get("chunk_size", 0))
    stats.total_documents = len(titles)
    return stats
