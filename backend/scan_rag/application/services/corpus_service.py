"""Bulk corpus fetch and the two-tier retrieval strategy built on it.

Callers that score many queries against the same scan (one per document in
a summarization pass, for example) fetch the corpus once and rank locally.
If that fetch fails with a store error, or finds nothing, each query falls
back to scoped retrieval: slower, but independent of the failed round-trip.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from scan_rag.application.interfaces.chunk_store import ChunkStore
from scan_rag.application.services.retrieval_service import (
    DEFAULT_TOP_K,
    RetrievalService,
    to_corpus_chunk,
)
from scan_rag.application.services.similarity import rank_chunks
from scan_rag.domain.entities.retrieval import (
    CorpusChunk,
    DocumentChunkStats,
    ScanCorpusStats,
    ScoredChunk,
)
from scan_rag.domain.exceptions import ChunkStoreError

logger = logging.getLogger(__name__)


class CorpusService:
    """Fetches every chunk of a scan in a single store query."""

    def __init__(self, chunk_store: ChunkStore):
        self._chunk_store = chunk_store

    async def retrieve_all_scan_chunks(self, scan_id: str) -> list[CorpusChunk]:
        """Return ``{text, embedding, document_id}`` for every chunk of the scan.

        Raises:
            ChunkStoreError: If the store query fails.
        """
        chunks = await self._chunk_store.query_by_scan(scan_id)
        logger.info("Retrieved %d chunks for scan %s in a single query", len(chunks), scan_id)
        return [to_corpus_chunk(chunk) for chunk in chunks]

    async def scan_stats(self, scan_id: str) -> ScanCorpusStats:
        """Count the scan's chunks, overall and per document (first-seen order)."""
        chunks = await self._chunk_store.query_by_scan(scan_id)

        counts: dict[str, int] = {}
        first_created: dict[str, datetime] = {}
        for chunk in chunks:
            counts[chunk.document_id] = counts.get(chunk.document_id, 0) + 1
            created = first_created.get(chunk.document_id)
            if created is None or chunk.created_at < created:
                first_created[chunk.document_id] = chunk.created_at

        return ScanCorpusStats(
            scan_id=scan_id,
            total_chunks=len(chunks),
            documents=[
                DocumentChunkStats(
                    document_id=document_id,
                    chunk_count=count,
                    first_created_at=first_created.get(document_id),
                )
                for document_id, count in counts.items()
            ],
        )


class CorpusRetrievalStrategy:
    """Preferred path: bulk fetch once, rank in memory per query.

    Degraded path: scoped retrieval per query, used when the bulk fetch
    raised ``ChunkStoreError`` or returned no chunks. Any other exception
    from the bulk fetch propagates.

    Usage:
        strategy = CorpusRetrievalStrategy(corpus_service, retrieval_service)
        await strategy.load(scan_id)
        for embedding in query_embeddings:
            snippets = await strategy.search(embedding, limit=5)
    """

    def __init__(
        self,
        corpus_service: CorpusService,
        retrieval_service: RetrievalService,
    ):
        self._corpus_service = corpus_service
        self._retrieval_service = retrieval_service
        self._scan_id: str | None = None
        self._corpus: list[CorpusChunk] = []
        self._bulk_error: ChunkStoreError | None = None

    @property
    def scan_id(self) -> str | None:
        return self._scan_id

    @property
    def corpus(self) -> list[CorpusChunk]:
        return list(self._corpus)

    @property
    def bulk_error(self) -> ChunkStoreError | None:
        """The store error that pushed this strategy onto the degraded path, if any."""
        return self._bulk_error

    @property
    def is_degraded(self) -> bool:
        """True when queries are served by per-query scoped retrieval."""
        return self._scan_id is not None and not self._corpus

    async def load(self, scan_id: str) -> list[CorpusChunk]:
        """Bulk-fetch the corpus of ``scan_id``; never raises ``ChunkStoreError``."""
        self._scan_id = scan_id
        self._corpus = []
        self._bulk_error = None

        try:
            self._corpus = await self._corpus_service.retrieve_all_scan_chunks(scan_id)
        except ChunkStoreError as exc:
            self._bulk_error = exc
            logger.warning(
                "Bulk corpus fetch failed for scan %s, falling back to per-query retrieval: %s",
                scan_id,
                exc,
            )
            return []

        if not self._corpus:
            logger.info("Bulk corpus fetch for scan %s returned no chunks", scan_id)
        return list(self._corpus)

    async def search(
        self,
        query_embedding: Sequence[float],
        limit: int = DEFAULT_TOP_K,
    ) -> list[ScoredChunk]:
        """Top ``limit`` chunks for one query, from whichever tier is available.

        Raises:
            RuntimeError: If ``load`` has not been called.
            ChunkStoreError: If the degraded path's scoped retrieval fails.
        """
        if self._scan_id is None:
            raise RuntimeError("CorpusRetrievalStrategy.load() must be called before search()")

        if self._corpus:
            return rank_chunks(query_embedding, self._corpus, limit)

        return await self._retrieval_service.search_similar_documents(
            query_embedding, self._scan_id, limit
        )

    async def search_many(
        self,
        query_embeddings: Sequence[Sequence[float]],
        limit: int = DEFAULT_TOP_K,
    ) -> list[list[ScoredChunk]]:
        """Run ``search`` for each query embedding, in order."""
        return [await self.search(embedding, limit) for embedding in query_embeddings]
