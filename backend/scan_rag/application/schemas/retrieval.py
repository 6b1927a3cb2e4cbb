"""Pydantic schemas for retrieval, corpus and grounded-answer API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

NO_RESULTS_MESSAGE = "No relevant information found"


# ── Request Schemas ──────────────────────────────────────────────────


class SearchRequest(BaseModel):
    """Scoped retrieval request — either a query text or a precomputed vector."""

    query: str | None = Field(default=None, description="Natural-language query to embed")
    query_embedding: list[float] | None = Field(
        default=None, description="Precomputed query vector (skips the embedding call)"
    )
    limit: int = Field(default=5, ge=1, le=100, description="Maximum number of chunks (top-K)")

    @model_validator(mode="after")
    def _require_query(self) -> "SearchRequest":
        if not (self.query and self.query.strip()) and not self.query_embedding:
            raise ValueError("Either 'query' or 'query_embedding' must be provided")
        return self


class HistoryMessageSchema(BaseModel):
    role: str = Field(..., pattern="^(user|assistant)$")
    content: str


class ChatRequest(BaseModel):
    """Grounded question about a scan's documents."""

    query: str = Field(..., min_length=1)
    conversation_history: list[HistoryMessageSchema] = []
    limit: int = Field(default=5, ge=1, le=20)

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class BatchSearchRequest(BaseModel):
    """Many queries against one scan: the corpus is fetched once and ranked locally."""

    queries: list[str] = Field(default=[], max_length=100, description="Query texts to embed")
    query_embeddings: list[list[float]] = Field(
        default=[], max_length=100, description="Precomputed query vectors"
    )
    limit: int = Field(default=5, ge=1, le=100)

    @model_validator(mode="after")
    def _require_one_kind(self) -> "BatchSearchRequest":
        if bool(self.queries) == bool(self.query_embeddings):
            raise ValueError("Provide exactly one of 'queries' or 'query_embeddings'")
        if any(not q.strip() for q in self.queries):
            raise ValueError("queries must not contain blank entries")
        return self


# ── Response Schemas ─────────────────────────────────────────────────


class ScoredChunkSchema(BaseModel):
    text: str
    score: float
    document_id: str | None = None
    chunk_id: str | None = None


class SearchResponse(BaseModel):
    """Ranked chunks; an empty list with a message means nothing matched."""

    scan_id: str
    results: list[ScoredChunkSchema] = []
    total_results: int = 0
    message: str | None = None


class CorpusChunkSchema(BaseModel):
    text: str
    embedding: list[float]
    document_id: str
    chunk_id: str | None = None


class CorpusResponse(BaseModel):
    scan_id: str
    chunks: list[CorpusChunkSchema] = []
    total_chunks: int = 0


class ChatResponse(BaseModel):
    query: str
    message: str
    results: list[ScoredChunkSchema] = []
    grounded: bool = False
    generated: bool = False
    retrieval_failed: bool = False


class BatchSearchResult(BaseModel):
    results: list[ScoredChunkSchema] = []
    total_results: int = 0


class BatchSearchResponse(BaseModel):
    """One ranked list per query, in request order.

    ``degraded`` is True when the bulk corpus fetch failed or was empty and
    each query was served by scoped retrieval instead.
    """

    scan_id: str
    searches: list[BatchSearchResult] = []
    degraded: bool = False


class DocumentChunkStatsSchema(BaseModel):
    document_id: str
    chunk_count: int
    first_created_at: datetime | None = None


class CorpusStatsResponse(BaseModel):
    scan_id: str
    total_chunks: int = 0
    total_documents: int = 0
    documents: list[DocumentChunkStatsSchema] = []
