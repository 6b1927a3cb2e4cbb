"""Unit tests for IngestionService and ChunkCleanupService."""

import pytest

from scan_rag.application.services.ingestion_service import ChunkCleanupService, IngestionService
from scan_rag.domain.entities import DocumentChunk
from scan_rag.domain.exceptions import (
    EmbeddingDimensionError,
    EmbeddingProviderError,
    PartitionKeyError,
)


# ── Fakes ────────────────────────────────────────────────────────────


class FakeEmbeddingProvider:
    """Returns deterministic vectors and records each batch it was asked to embed."""

    def __init__(self, dimensions: int = 3, returned_dimensions: int | None = None):
        self._dimensions = dimensions
        self._returned = returned_dimensions or dimensions
        self.batches: list[list[str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def generate_embeddings(self, texts):
        self.batches.append(list(texts))
        return [[float(len(t))] + [0.5] * (self._returned - 1) for t in texts]

    async def embed_query(self, text):
        return (await self.generate_embeddings([text]))[0]


class FailingEmbeddingProvider(FakeEmbeddingProvider):
    async def generate_embeddings(self, texts):
        raise EmbeddingProviderError(provider="fake", status_code=503, message="down")


class FakeChunkStore:
    """Records every call so tests can assert the order of writes."""

    def __init__(self, chunks: list[DocumentChunk] | None = None):
        self.chunks: dict[tuple[str, str], DocumentChunk] = {
            (c.tenant_id, c.id): c for c in chunks or []
        }
        self.calls: list[tuple[str, str]] = []

    async def get(self, chunk_id, partition_key):
        return self.chunks.get((partition_key, chunk_id))

    async def query_by_scan(self, scan_id):
        return [c for c in self.chunks.values() if c.scan_id == scan_id]

    async def query_by_document(self, document_id, scan_id):
        return [
            c for c in self.chunks.values()
            if c.scan_id == scan_id and c.document_id == document_id
        ]

    async def insert(self, chunk, partition_key):
        self.calls.append(("insert", chunk.id))
        self.chunks[(partition_key, chunk.id)] = chunk

    async def delete_by_id(self, chunk_id, partition_key):
        self.calls.append(("delete", chunk_id))
        return self.chunks.pop((partition_key, chunk_id), None) is not None


def _stored(n: int, document_id: str = "doc-1", scan_id: str = "S1", tenant_id: str = "t1"):
    return DocumentChunk(
        id=f"{document_id}_chunk_{n}",
        tenant_id=tenant_id,
        scan_id=scan_id,
        document_id=document_id,
        chunk_index=n,
        text=f"old text {n}",
        embedding=[1.0, 0.0, 0.0],
    )


def _paragraphs(count: int, size: int = 300) -> str:
    return "\n\n".join(chr(ord("a") + i % 26) * size for i in range(count))


# ── Ingestion ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ingest_stores_one_chunk_per_part_with_stable_ids():
    store = FakeChunkStore()
    service = IngestionService(FakeEmbeddingProvider(), store, chunk_size=700, chunk_overlap=0)

    stored = await service.ingest_document("t1", "S1", "doc-1", _paragraphs(4))

    assert stored == 2
    chunks = sorted(store.chunks.values(), key=lambda c: c.chunk_index)
    assert [c.id for c in chunks] == ["doc-1_chunk_0", "doc-1_chunk_1"]
    assert all(c.tenant_id == "t1" and c.scan_id == "S1" for c in chunks)
    assert all(len(c.embedding) == 3 for c in chunks)


@pytest.mark.asyncio
async def test_reingest_replaces_previous_chunks():
    old = [_stored(i) for i in range(5)]
    untouched = _stored(0, document_id="doc-2")
    store = FakeChunkStore(old + [untouched])
    service = IngestionService(FakeEmbeddingProvider(), store)

    stored = await service.ingest_document("t1", "S1", "doc-1", "Short refreshed text.")

    assert stored == 1
    doc_chunks = await store.query_by_document("doc-1", "S1")
    assert [c.text for c in doc_chunks] == ["Short refreshed text."]
    assert await store.get(untouched.id, "t1") is untouched
    # every delete happens before the first insert
    kinds = [kind for kind, _ in store.calls]
    assert kinds == ["delete"] * 5 + ["insert"]


@pytest.mark.asyncio
async def test_dimension_mismatch_leaves_existing_chunks_in_place():
    store = FakeChunkStore([_stored(0)])
    provider = FakeEmbeddingProvider(dimensions=3, returned_dimensions=2)
    service = IngestionService(provider, store)

    with pytest.raises(EmbeddingDimensionError) as exc_info:
        await service.ingest_document("t1", "S1", "doc-1", "new text")

    assert exc_info.value.expected == 3
    assert exc_info.value.actual == 2
    assert store.calls == []


@pytest.mark.asyncio
async def test_provider_failure_leaves_existing_chunks_in_place():
    store = FakeChunkStore([_stored(0)])
    service = IngestionService(FailingEmbeddingProvider(), store)

    with pytest.raises(EmbeddingProviderError):
        await service.ingest_document("t1", "S1", "doc-1", "new text")

    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("tenant_id", ["", "   "])
async def test_blank_partition_key_is_rejected(tenant_id):
    store = FakeChunkStore()
    service = IngestionService(FakeEmbeddingProvider(), store)

    with pytest.raises(PartitionKeyError):
        await service.ingest_document(tenant_id, "S1", "doc-1", "text")

    assert store.calls == []


@pytest.mark.asyncio
async def test_empty_text_clears_document_and_stores_nothing():
    store = FakeChunkStore([_stored(0), _stored(1)])
    provider = FakeEmbeddingProvider()
    service = IngestionService(provider, store)

    stored = await service.ingest_document("t1", "S1", "doc-1", "   \n\n ")

    assert stored == 0
    assert provider.batches == []
    assert store.chunks == {}


@pytest.mark.asyncio
async def test_embeddings_are_requested_in_batches():
    provider = FakeEmbeddingProvider()
    service = IngestionService(
        provider, FakeChunkStore(), chunk_size=300, chunk_overlap=0, batch_size=2
    )

    stored = await service.ingest_document("t1", "S1", "doc-1", _paragraphs(5))

    assert stored == 5
    assert [len(b) for b in provider.batches] == [2, 2, 1]


def test_overlap_must_be_smaller_than_chunk_size():
    with pytest.raises(ValueError):
        IngestionService(FakeEmbeddingProvider(), FakeChunkStore(), chunk_size=100, chunk_overlap=100)


# ── Splitting ────────────────────────────────────────────────────────


def test_short_text_is_a_single_chunk():
    service = IngestionService(FakeEmbeddingProvider(), FakeChunkStore())

    assert service._split_text("  hello world  ") == ["hello world"]


def test_long_text_respects_chunk_size():
    service = IngestionService(
        FakeEmbeddingProvider(), FakeChunkStore(), chunk_size=200, chunk_overlap=40
    )
    text = " ".join(f"word{i}" for i in range(500))

    parts = service._split_text(text)

    assert len(parts) > 1
    assert all(len(p) <= 200 for p in parts)
    assert parts[0].startswith("word0 ")
    assert parts[-1].endswith("word499")


def test_consecutive_chunks_overlap():
    service = IngestionService(
        FakeEmbeddingProvider(), FakeChunkStore(), chunk_size=200, chunk_overlap=40
    )
    text = " ".join(f"w{i:03d}" for i in range(300))

    parts = service._split_text(text)

    assert parts[0][-20:] in parts[1]


def test_text_without_separators_is_hard_cut():
    service = IngestionService(
        FakeEmbeddingProvider(), FakeChunkStore(), chunk_size=100, chunk_overlap=10
    )

    parts = service._split_text("x" * 250)

    assert [len(p) for p in parts] == [100, 100, 50]


# ── Cleanup ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_scan_removes_only_that_scan():
    keep = _stored(0, document_id="doc-3", scan_id="S2")
    store = FakeChunkStore([_stored(0), _stored(1, document_id="doc-2"), keep])

    deleted = await ChunkCleanupService(store).delete_scan("t1", "S1")

    assert deleted == 2
    assert list(store.chunks.values()) == [keep]


@pytest.mark.asyncio
async def test_delete_document_with_no_chunks_returns_zero():
    store = FakeChunkStore()

    assert await ChunkCleanupService(store).delete_document("t1", "S1", "missing") == 0
    assert store.calls == []


@pytest.mark.asyncio
async def test_delete_with_mismatched_partition_key_fails_without_deleting():
    store = FakeChunkStore([_stored(0, tenant_id="t1"), _stored(1, tenant_id="t1")])

    with pytest.raises(PartitionKeyError):
        await ChunkCleanupService(store).delete_document("t2", "S1", "doc-1")

    assert store.calls == []
    assert len(store.chunks) == 2


class NonFiniteEmbeddingProvider(FakeEmbeddingProvider):
    async def generate_embeddings(self, texts):
        return [[float("nan"), 0.5, 0.5] for _ in texts]


@pytest.mark.asyncio
async def test_non_finite_embedding_is_rejected_before_store_is_touched():
    store = FakeChunkStore([_stored(0)])
    service = IngestionService(NonFiniteEmbeddingProvider(), store)

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await service.ingest_document("t1", "S1", "doc-1", "new text")

    assert exc_info.value.status_code == 502
    assert store.calls == []
