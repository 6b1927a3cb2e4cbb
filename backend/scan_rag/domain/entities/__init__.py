from .document_chunk import DocumentChunk, chunk_id_for
from .retrieval import (
    CorpusChunk,
    DocumentChunkStats,
    GroundedAnswer,
    HistoryMessage,
    ScanCorpusStats,
    ScoredChunk,
)

__all__ = [
    "DocumentChunk",
    "chunk_id_for",
    "CorpusChunk",
    "DocumentChunkStats",
    "GroundedAnswer",
    "HistoryMessage",
    "ScanCorpusStats",
    "ScoredChunk",
]
