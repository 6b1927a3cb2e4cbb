"""Domain entities for retrieval results and grounded answers."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk ranked against a query vector."""

    text: str
    score: float
    document_id: str | None = None
    chunk_id: str | None = None


@dataclass(frozen=True)
class CorpusChunk:
    """One row of a bulk corpus fetch — kept with its embedding for local ranking."""

    text: str
    embedding: list[float]
    document_id: str
    chunk_id: str | None = None


@dataclass
class HistoryMessage:
    """A prior turn of the conversation handed to the text generator."""

    role: str  # "user" | "assistant"
    content: str


@dataclass
class GroundedAnswer:
    """Outcome of a retrieval-augmented answer.

    ``grounded`` is True when document snippets were found, ``generated``
    when the text generator produced ``message``. ``retrieval_failed``
    separates "nothing ingested yet" from "the store is unreachable".
    """

    query: str
    message: str
    results: list[ScoredChunk] = field(default_factory=list)
    grounded: bool = False
    generated: bool = False
    retrieval_failed: bool = False


@dataclass(frozen=True)
class DocumentChunkStats:
    document_id: str
    chunk_count: int
    first_created_at: datetime | None = None


@dataclass
class ScanCorpusStats:
    """Chunk counts of one scan, overall and per document."""

    scan_id: str
    total_chunks: int = 0
    documents: list[DocumentChunkStats] = field(default_factory=list)
