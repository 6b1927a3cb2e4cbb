from .chunks import DeleteChunksResponse, IngestDocumentRequest, IngestDocumentResponse
from .retrieval import (
    NO_RESULTS_MESSAGE,
    BatchSearchRequest,
    BatchSearchResponse,
    BatchSearchResult,
    ChatRequest,
    ChatResponse,
    CorpusChunkSchema,
    CorpusResponse,
    CorpusStatsResponse,
    DocumentChunkStatsSchema,
    HistoryMessageSchema,
    ScoredChunkSchema,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "DeleteChunksResponse",
    "IngestDocumentRequest",
    "IngestDocumentResponse",
    "NO_RESULTS_MESSAGE",
    "BatchSearchRequest",
    "BatchSearchResponse",
    "BatchSearchResult",
    "ChatRequest",
    "ChatResponse",
    "CorpusChunkSchema",
    "CorpusResponse",
    "CorpusStatsResponse",
    "DocumentChunkStatsSchema",
    "HistoryMessageSchema",
    "ScoredChunkSchema",
    "SearchRequest",
    "SearchResponse",
]
