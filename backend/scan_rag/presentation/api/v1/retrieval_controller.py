"""Retrieval API controller — scoped and batch search, bulk corpus fetch, stats and grounded chat."""

from fastapi import APIRouter, Depends, HTTPException, status

from scan_rag.application.interfaces import EmbeddingProvider
from scan_rag.application.schemas import (
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
    ScoredChunkSchema,
    SearchRequest,
    SearchResponse,
)
from scan_rag.application.services import (
    CorpusRetrievalStrategy,
    CorpusService,
    GroundedAnswerService,
    RetrievalService,
)
from scan_rag.domain.entities import HistoryMessage, ScoredChunk
from scan_rag.domain.exceptions import ChunkStoreError, EmbeddingProviderError
from scan_rag.infrastructure.dependencies import (
    get_corpus_retrieval_strategy,
    get_corpus_service,
    get_grounded_answer_service,
    get_optional_embedding_provider,
    get_retrieval_service,
)

router = APIRouter(prefix="/scans/{scan_id}", tags=["retrieval"])


# ── Helpers ──────────────────────────────────────────────────────────


def _to_scored_schema(result: ScoredChunk) -> ScoredChunkSchema:
    return ScoredChunkSchema(
        text=result.text,
        score=result.score,
        document_id=result.document_id,
        chunk_id=result.chunk_id,
    )


def _store_unavailable(e: ChunkStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def _embedding_failed(e: EmbeddingProviderError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"[{e.provider}] {e.message}",
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.post("/search", response_model=SearchResponse)
async def search_similar_documents(
    scan_id: str,
    body: SearchRequest,
    service: RetrievalService = Depends(get_retrieval_service),
    embedding_provider: EmbeddingProvider | None = Depends(get_optional_embedding_provider),
):
    """Rank the scan's chunks against a query and return the top-K."""
    query_embedding = body.query_embedding
    if not query_embedding:
        if embedding_provider is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Embedding provider is not configured; pass 'query_embedding' instead",
            )
        try:
            query_embedding = await embedding_provider.embed_query(body.query or "")
        except EmbeddingProviderError as e:
            raise _embedding_failed(e)

    try:
        results = await service.search_similar_documents(query_embedding, scan_id, body.limit)
    except ChunkStoreError as e:
        raise _store_unavailable(e)

    return SearchResponse(
        scan_id=scan_id,
        results=[_to_scored_schema(r) for r in results],
        total_results=len(results),
        message=None if results else NO_RESULTS_MESSAGE,
    )


@router.post("/search/batch", response_model=BatchSearchResponse)
async def search_batch(
    scan_id: str,
    body: BatchSearchRequest,
    strategy: CorpusRetrievalStrategy = Depends(get_corpus_retrieval_strategy),
    embedding_provider: EmbeddingProvider | None = Depends(get_optional_embedding_provider),
):
    """Rank the scan's chunks against many queries with a single corpus fetch.

    Falls back to scoped retrieval per query when the bulk fetch fails or
    finds nothing; ``degraded`` reports which path served the batch.
    """
    query_embeddings = body.query_embeddings
    if body.queries:
        if embedding_provider is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Embedding provider is not configured; pass 'query_embeddings' instead",
            )
        try:
            query_embeddings = [await embedding_provider.embed_query(q) for q in body.queries]
        except EmbeddingProviderError as e:
            raise _embedding_failed(e)

    await strategy.load(scan_id)
    try:
        ranked = await strategy.search_many(query_embeddings, body.limit)
    except ChunkStoreError as e:
        raise _store_unavailable(e)

    return BatchSearchResponse(
        scan_id=scan_id,
        searches=[
            BatchSearchResult(
                results=[_to_scored_schema(r) for r in results],
                total_results=len(results),
            )
            for results in ranked
        ],
        degraded=strategy.is_degraded,
    )


@router.get("/corpus", response_model=CorpusResponse)
async def retrieve_all_scan_chunks(
    scan_id: str,
    service: CorpusService = Depends(get_corpus_service),
):
    """Return every chunk of the scan with its embedding, for client-side ranking."""
    try:
        chunks = await service.retrieve_all_scan_chunks(scan_id)
    except ChunkStoreError as e:
        raise _store_unavailable(e)

    return CorpusResponse(
        scan_id=scan_id,
        chunks=[
            CorpusChunkSchema(
                text=c.text,
                embedding=c.embedding,
                document_id=c.document_id,
                chunk_id=c.chunk_id,
            )
            for c in chunks
        ],
        total_chunks=len(chunks),
    )


@router.get("/corpus/stats", response_model=CorpusStatsResponse)
async def corpus_stats(
    scan_id: str,
    service: CorpusService = Depends(get_corpus_service),
):
    """Chunk counts for the scan, overall and per document."""
    try:
        stats = await service.scan_stats(scan_id)
    except ChunkStoreError as e:
        raise _store_unavailable(e)

    return CorpusStatsResponse(
        scan_id=scan_id,
        total_chunks=stats.total_chunks,
        total_documents=len(stats.documents),
        documents=[
            DocumentChunkStatsSchema(
                document_id=d.document_id,
                chunk_count=d.chunk_count,
                first_created_at=d.first_created_at,
            )
            for d in stats.documents
        ],
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    scan_id: str,
    body: ChatRequest,
    service: GroundedAnswerService = Depends(get_grounded_answer_service),
):
    """Answer a question grounded in the scan's documents."""
    history = [HistoryMessage(role=m.role, content=m.content) for m in body.conversation_history]
    try:
        answer = await service.answer(scan_id, body.query, history=history, limit=body.limit)
    except EmbeddingProviderError as e:
        raise _embedding_failed(e)

    return ChatResponse(
        query=answer.query,
        message=answer.message,
        results=[_to_scored_schema(r) for r in answer.results],
        grounded=answer.grounded,
        generated=answer.generated,
        retrieval_failed=answer.retrieval_failed,
    )
