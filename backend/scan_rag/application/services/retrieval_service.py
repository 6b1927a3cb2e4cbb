"""Scoped retrieval — rank one scan's chunks against a query embedding."""

import logging
import time
from collections.abc import Sequence

from scan_rag.application.interfaces.chunk_store import ChunkStore
from scan_rag.application.services.similarity import rank_chunks
from scan_rag.domain.entities.document_chunk import DocumentChunk
from scan_rag.domain.entities.retrieval import CorpusChunk, ScoredChunk

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


def to_corpus_chunk(chunk: DocumentChunk) -> CorpusChunk:
    """Project a stored chunk onto the fields ranking needs."""
    return CorpusChunk(
        text=chunk.text,
        embedding=chunk.embedding,
        document_id=chunk.document_id,
        chunk_id=chunk.id,
    )


class RetrievalService:
    """Application service for scan-scoped similarity search.

    Loads the candidate set through ``ChunkStore.query_by_scan`` and ranks
    it in memory. An empty scan yields ``[]``; a store failure propagates
    as ``ChunkStoreError`` so callers can tell the two apart.
    """

    def __init__(self, chunk_store: ChunkStore, *, default_limit: int = DEFAULT_TOP_K):
        self._chunk_store = chunk_store
        self._default_limit = default_limit

    async def search_similar_documents(
        self,
        query_embedding: Sequence[float],
        scan_id: str,
        limit: int | None = None,
    ) -> list[ScoredChunk]:
        """Return the top ``limit`` chunks of ``scan_id`` by cosine similarity."""
        limit = self._default_limit if limit is None else limit
        start = time.monotonic()

        chunks = await self._chunk_store.query_by_scan(scan_id)
        logger.debug("Found %d chunks for scan %s", len(chunks), scan_id)

        if not chunks:
            logger.info("No chunks ingested for scan %s", scan_id)
            return []

        results = rank_chunks(query_embedding, (to_corpus_chunk(c) for c in chunks), limit)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Scoped search for scan %s: %d/%d chunks returned in %dms (top=%.4f)",
            scan_id,
            len(results),
            len(chunks),
            duration_ms,
            results[0].score if results else 0.0,
        )
        return results
