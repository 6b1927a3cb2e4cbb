"""Domain entity for document chunks — text fragments with vector embeddings."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def chunk_id_for(document_id: str, chunk_index: int) -> str:
    """Deterministic chunk id, stable across re-ingestion of the same document."""
    return f"{document_id}_chunk_{chunk_index}"


@dataclass(frozen=True)
class DocumentChunk:
    """A retrievable fragment of an uploaded business document.

    Every chunk belongs to exactly one scan and one document and is stored
    under its tenant's partition. Chunks are immutable: re-ingesting a
    document deletes its chunks and writes new ones.
    """

    id: str
    tenant_id: str
    scan_id: str
    document_id: str
    chunk_index: int
    text: str
    embedding: list[float] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
