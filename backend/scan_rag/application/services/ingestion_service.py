"""Ingestion service — orchestrates text chunking, embedding generation, and storage.

This is an application service that coordinates:
1. Splitting extracted document text into chunks
2. Generating embeddings via the EmbeddingProvider
3. Replacing the document's chunks in the ChunkStore
"""

import logging
import math
import time

from scan_rag.application.interfaces.chunk_store import ChunkStore
from scan_rag.application.interfaces.embedding_provider import EmbeddingProvider
from scan_rag.domain.entities.document_chunk import DocumentChunk, chunk_id_for
from scan_rag.domain.exceptions import (
    EmbeddingDimensionError,
    EmbeddingProviderError,
    PartitionKeyError,
)
from scan_rag.infrastructure.logging.colored_logger import IngestionStage, PipelineLogger

logger = logging.getLogger(__name__)
plog = PipelineLogger("IngestionService")

# ── Chunking constants ──────────────────────────────────────────────
_DEFAULT_CHUNK_SIZE = 1200  # ~300 tokens (rough 4:1 char-to-token ratio)
_DEFAULT_CHUNK_OVERLAP = 200
_DEFAULT_BATCH_SIZE = 50  # Max texts per embedding API call


class ChunkCleanupService:
    """Deletes chunks by document or by scan, one point delete per chunk.

    Every delete names the tenant partition; a stored chunk from another
    partition aborts the operation with ``PartitionKeyError``.
    """

    def __init__(self, chunk_store: ChunkStore):
        self._chunk_store = chunk_store

    async def delete_document(self, tenant_id: str, scan_id: str, document_id: str) -> int:
        """Delete every chunk of one document. Returns the number deleted."""
        _require_partition_key(tenant_id)
        existing = await self._chunk_store.query_by_document(document_id, scan_id)
        return await self._delete_chunks(existing, tenant_id, f"document {document_id}")

    async def delete_scan(self, tenant_id: str, scan_id: str) -> int:
        """Delete every chunk of a scan (cascade from scan deletion)."""
        _require_partition_key(tenant_id)
        existing = await self._chunk_store.query_by_scan(scan_id)
        return await self._delete_chunks(existing, tenant_id, f"scan {scan_id}")

    async def _delete_chunks(
        self, chunks: list[DocumentChunk], tenant_id: str, label: str
    ) -> int:
        if not chunks:
            return 0

        foreign = [c.id for c in chunks if c.tenant_id != tenant_id]
        if foreign:
            raise PartitionKeyError(
                f"{len(foreign)} chunks of {label} are not stored under partition '{tenant_id}'"
            )

        deleted = 0
        with plog.timed_step(IngestionStage.DELETE, f"Deleting {len(chunks)} chunks for {label}"):
            for chunk in chunks:
                if await self._chunk_store.delete_by_id(chunk.id, tenant_id):
                    deleted += 1
        logger.info("Deleted %d chunks for %s", deleted, label)
        return deleted


class IngestionService:
    """Application service for turning extracted document text into stored chunks.

    Re-ingesting a document deletes its previous chunks before inserting the
    new ones, so stale fragments never sit next to refreshed ones.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        chunk_store: ChunkStore,
        *,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = _DEFAULT_CHUNK_OVERLAP,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ):
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self._embedding_provider = embedding_provider
        self._chunk_store = chunk_store
        self._cleanup = ChunkCleanupService(chunk_store)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._batch_size = batch_size

    async def ingest_document(
        self,
        tenant_id: str,
        scan_id: str,
        document_id: str,
        text: str,
    ) -> int:
        """Chunk, embed and store a document's text.

        Embeddings are generated and validated before the store is touched,
        so a provider failure or dimension mismatch leaves the previous
        chunks in place.

        Returns:
            Number of chunks written.

        Raises:
            PartitionKeyError: If ``tenant_id`` is blank.
            EmbeddingProviderError: If the provider fails.
            EmbeddingDimensionError: If a vector has the wrong length.
            ChunkStoreError: If the store fails.
        """
        _require_partition_key(tenant_id)
        start = time.monotonic()
        plog.separator(f"document {document_id}")

        with plog.timed_step(IngestionStage.CHUNK, "Splitting text", chars=len(text or "")):
            parts = self._split_text(text or "")
            plog.detail(f"{len(parts)} chunks", chunk_size=self._chunk_size)

        embeddings: list[list[float]] = []
        if parts:
            with plog.timed_step(IngestionStage.EMBED, f"Embedding {len(parts)} chunks"):
                embeddings = await self._embed_in_batches(parts)

            with plog.timed_step(IngestionStage.VALIDATE, "Checking embedding dimensions"):
                self._validate_dimensions(embeddings, expected_count=len(parts))

        deleted = await self.delete_document(tenant_id, scan_id, document_id)

        if not parts:
            logger.info("No embeddable text for document %s", document_id)
            return 0

        chunks = [
            DocumentChunk(
                id=chunk_id_for(document_id, index),
                tenant_id=tenant_id,
                scan_id=scan_id,
                document_id=document_id,
                chunk_index=index,
                text=part,
                embedding=embedding,
            )
            for index, (part, embedding) in enumerate(zip(parts, embeddings, strict=True))
        ]

        with plog.timed_step(IngestionStage.STORE, f"Storing {len(chunks)} chunks"):
            for chunk in chunks:
                await self._chunk_store.insert(chunk, tenant_id)

        duration_ms = int((time.monotonic() - start) * 1000)
        plog.stats(document=document_id, replaced=deleted, stored=len(chunks), duration_ms=duration_ms)
        logger.info(
            "Ingested document %s for scan %s: %d chunks in %dms",
            document_id,
            scan_id,
            len(chunks),
            duration_ms,
        )
        return len(chunks)

    async def delete_document(self, tenant_id: str, scan_id: str, document_id: str) -> int:
        return await self._cleanup.delete_document(tenant_id, scan_id, document_id)

    async def delete_scan(self, tenant_id: str, scan_id: str) -> int:
        return await self._cleanup.delete_scan(tenant_id, scan_id)

    async def _embed_in_batches(self, texts: list[str]) -> list[list[float]]:
        all_embeddings: list[list[float]] = []
        for batch_start in range(0, len(texts), self._batch_size):
            batch = texts[batch_start : batch_start + self._batch_size]
            batch_embeddings = await self._embedding_provider.generate_embeddings(batch)
            all_embeddings.extend(batch_embeddings)
        return all_embeddings

    def _validate_dimensions(self, embeddings: list[list[float]], *, expected_count: int) -> None:
        """Reject any vector of the wrong length or with non-finite components."""
        if len(embeddings) != expected_count:
            raise ValueError(
                f"Embedding provider returned {len(embeddings)} vectors for {expected_count} texts"
            )
        expected = self._embedding_provider.dimensions
        for embedding in embeddings:
            if len(embedding) != expected:
                raise EmbeddingDimensionError(expected=expected, actual=len(embedding))
            if not all(math.isfinite(value) for value in embedding):
                raise EmbeddingProviderError(
                    provider="embedding",
                    status_code=502,
                    message="Embedding contains NaN or infinite values",
                )

    def _split_text(self, text: str) -> list[str]:
        """Split text into overlapping chunks using a recursive character strategy.

        Splits on paragraph breaks first, then lines, sentences, words.
        """
        text = text.strip()
        if not text:
            return []

        if len(text) <= self._chunk_size:
            return [text]

        chunks: list[str] = []
        separators = ["\n\n", "\n", ". ", " "]
        self._recursive_split(text, separators, chunks)
        return chunks

    def _recursive_split(
        self, text: str, separators: list[str], chunks: list[str]
    ) -> None:
        """Recursively split text using the separator hierarchy."""
        if len(text) <= self._chunk_size:
            if text.strip():
                chunks.append(text.strip())
            return

        sep_index = next(
            (i for i, sep in enumerate(separators) if sep in text), None
        )
        if sep_index is None:
            # No separator left: hard-cut into chunk_size pieces
            for i in range(0, len(text), self._chunk_size):
                piece = text[i : i + self._chunk_size].strip()
                if piece:
                    chunks.append(piece)
            return

        best_sep = separators[sep_index]
        finer = separators[sep_index + 1 :]
        current_chunk = ""

        for part in text.split(best_sep):
            if len(part) > self._chunk_size:
                if current_chunk.strip():
                    chunks.append(current_chunk.strip())
                current_chunk = ""
                self._recursive_split(part, finer, chunks)
                continue

            candidate = f"{current_chunk}{best_sep}{part}" if current_chunk else part

            if len(candidate) > self._chunk_size and current_chunk:
                chunks.append(current_chunk.strip())
                # Overlap: keep the tail of the previous chunk
                overlap_text = current_chunk[-self._chunk_overlap :] if self._chunk_overlap else ""
                current_chunk = f"{overlap_text}{best_sep}{part}" if overlap_text else part
                if len(current_chunk) > self._chunk_size:
                    current_chunk = part
            else:
                current_chunk = candidate

        if current_chunk.strip():
            chunks.append(current_chunk.strip())


def _require_partition_key(tenant_id: str) -> None:
    if not tenant_id or not tenant_id.strip():
        raise PartitionKeyError("tenant_id is required as the chunk partition key")
