"""End-to-end API tests: ingestion, scoped and batch search, corpus fetch, stats and chat.

The app is built without its lifespan; each test wires an in-memory SQLite
session factory and fake providers onto ``app.state``.
"""

import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from scan_rag.domain.entities import DocumentChunk
from scan_rag.domain.exceptions import ChunkStoreError
from scan_rag.infrastructure.database import Base, build_engine, build_session_factory
from scan_rag.infrastructure.database.repositories import SQLAlchemyChunkStore
from scan_rag.infrastructure.database.session import get_db_session
from scan_rag.infrastructure.dependencies import get_chunk_store
from scan_rag.main import create_app


# ── Fakes ────────────────────────────────────────────────────────────


class KeywordEmbeddingProvider:
    """Embeds text onto two axes: revenue-ish and headcount-ish."""

    dimensions = 2

    @staticmethod
    def _vector(text: str) -> list[float]:
        lowered = text.lower()
        return [
            1.0 if "revenue" in lowered else 0.0,
            1.0 if "headcount" in lowered else 0.1,
        ]

    async def generate_embeddings(self, texts):
        return [self._vector(t) for t in texts]

    async def embed_query(self, text):
        return self._vector(text)


class WrongDimensionProvider(KeywordEmbeddingProvider):
    dimensions = 3


class EchoTextGenerator:
    provider_name = "echo"

    async def generate(self, question, context, history=None):
        return f"Answer to '{question}' from {context.count('Document section')} sections"


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def app(engine):
    app = create_app()
    app.state.session_factory = build_session_factory(engine)
    app.state.embedding_provider = KeywordEmbeddingProvider()
    app.state.text_generator = None
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seeded(engine):
    """Scan S1 holds three chunks with hand-picked embeddings; S2 is empty."""
    async with build_session_factory(engine)() as session:
        store = SQLAlchemyChunkStore(session)
        for n, embedding in [(1, [1.0, 0.0]), (2, [0.0, 1.0]), (3, [0.9, 0.1])]:
            await store.insert(
                DocumentChunk(
                    id=f"doc-1_chunk_{n}",
                    tenant_id="t1",
                    scan_id="S1",
                    document_id="doc-1",
                    chunk_index=n,
                    text=f"chunk {n}",
                    embedding=embedding,
                ),
                "t1",
            )
        await session.commit()


# ── Scoped search ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_with_precomputed_vector_returns_top_k(client, seeded):
    response = await client.post(
        "/api/v1/scans/S1/search", json={"query_embedding": [1.0, 0.0], "limit": 2}
    )

    assert response.status_code == 200
    data = response.json()
    assert [r["text"] for r in data["results"]] == ["chunk 1", "chunk 3"]
    assert data["results"][0]["score"] == pytest.approx(1.0)
    assert data["results"][1]["score"] == pytest.approx(0.994, abs=1e-3)
    assert data["total_results"] == 2
    assert data["message"] is None


@pytest.mark.asyncio
async def test_search_on_empty_scan_returns_message(client, seeded):
    response = await client.post(
        "/api/v1/scans/S2/search", json={"query_embedding": [1.0, 0.0]}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["results"] == []
    assert data["message"] == "No relevant information found"


@pytest.mark.asyncio
async def test_search_requires_query_or_vector(client):
    response = await client.post("/api/v1/scans/S1/search", json={"limit": 3})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_text_query_without_provider_is_unavailable(app, client):
    app.state.embedding_provider = None

    response = await client.post("/api/v1/scans/S1/search", json={"query": "revenue"})

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_store_failure_is_reported_not_masked_as_empty(app, client):
    broken = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    app.state.session_factory = build_session_factory(broken)

    search = await client.post("/api/v1/scans/S1/search", json={"query_embedding": [1.0, 0.0]})
    corpus = await client.get("/api/v1/scans/S1/corpus")

    assert search.status_code == 503
    assert corpus.status_code == 503
    await broken.dispose()


# ── Bulk corpus fetch ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_corpus_returns_all_chunks_with_embeddings(client, seeded):
    response = await client.get("/api/v1/scans/S1/corpus")

    assert response.status_code == 200
    data = response.json()
    assert data["total_chunks"] == 3
    assert [c["chunk_id"] for c in data["chunks"]] == [
        "doc-1_chunk_1",
        "doc-1_chunk_2",
        "doc-1_chunk_3",
    ]
    assert data["chunks"][2]["embedding"] == [0.9, 0.1]

    empty = await client.get("/api/v1/scans/S2/corpus")
    assert empty.json()["chunks"] == []


# ── Ingestion and cleanup ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ingest_then_search_by_text(client):
    revenue = await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/fin/chunks",
        json={"text": "Revenue grew 12% in 2023."},
    )
    people = await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/hr/chunks",
        json={"text": "Headcount stayed flat."},
    )

    assert revenue.status_code == 200
    assert revenue.json()["chunks_stored"] == 1
    assert people.json()["chunks_stored"] == 1

    response = await client.post(
        "/api/v1/scans/S5/search", json={"query": "What happened to revenue?", "limit": 1}
    )
    results = response.json()["results"]
    assert [r["document_id"] for r in results] == ["fin"]
    assert results[0]["chunk_id"] == "fin_chunk_0"


@pytest.mark.asyncio
async def test_reingest_replaces_document_chunks(client):
    url = "/api/v1/tenants/t1/scans/S5/documents/fin/chunks"
    await client.put(url, json={"text": "Revenue grew."})
    await client.put(url, json={"text": "Revenue shrank."})

    corpus = (await client.get("/api/v1/scans/S5/corpus")).json()

    assert [c["text"] for c in corpus["chunks"]] == ["Revenue shrank."]


@pytest.mark.asyncio
async def test_ingest_with_wrong_dimensions_is_rejected(app, client):
    app.state.embedding_provider = WrongDimensionProvider()

    response = await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/fin/chunks",
        json={"text": "Revenue grew."},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_document_and_scan_chunks(client, seeded):
    await client.put(
        "/api/v1/tenants/t1/scans/S1/documents/fin/chunks",
        json={"text": "Revenue grew."},
    )

    doc = await client.delete("/api/v1/tenants/t1/scans/S1/documents/fin/chunks")
    assert doc.status_code == 200
    assert doc.json()["chunks_deleted"] == 1

    foreign = await client.delete("/api/v1/tenants/t2/scans/S1/chunks")
    assert foreign.status_code == 422

    scan = await client.delete("/api/v1/tenants/t1/scans/S1/chunks")
    assert scan.json()["chunks_deleted"] == 3
    assert (await client.get("/api/v1/scans/S1/corpus")).json()["total_chunks"] == 0


# ── Grounded chat ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_chat_generates_answer_from_scan(app, client):
    app.state.text_generator = EchoTextGenerator()
    await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/fin/chunks",
        json={"text": "Revenue grew 12% in 2023."},
    )

    response = await client.post(
        "/api/v1/scans/S5/chat",
        json={
            "query": "How did revenue develop?",
            "conversation_history": [{"role": "user", "content": "Hello"}],
            "limit": 3,
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["generated"] is True
    assert data["message"] == "Answer to 'How did revenue develop?' from 1 sections"
    assert data["results"][0]["document_id"] == "fin"


@pytest.mark.asyncio
async def test_chat_on_empty_scan_is_not_grounded(client):
    response = await client.post("/api/v1/scans/S9/chat", json={"query": "Anything?"})

    data = response.json()
    assert data["grounded"] is False
    assert data["retrieval_failed"] is False
    assert data["results"] == []


# ── Batch search ─────────────────────────────────────────────────────


class FirstScanQueryFailsStore(SQLAlchemyChunkStore):
    """Bulk fetch fails once; the per-query fallback then reads normally."""

    def __init__(self, session):
        super().__init__(session)
        self._failed = False

    async def query_by_scan(self, scan_id):
        if not self._failed:
            self._failed = True
            raise ChunkStoreError(operation="query_by_scan", message="throttled")
        return await super().query_by_scan(scan_id)


@pytest.mark.asyncio
async def test_batch_search_ranks_each_query_from_one_corpus(client, seeded):
    response = await client.post(
        "/api/v1/scans/S1/search/batch",
        json={"query_embeddings": [[1.0, 0.0], [0.0, 1.0]], "limit": 2},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["degraded"] is False
    assert [r["text"] for r in data["searches"][0]["results"]] == ["chunk 1", "chunk 3"]
    assert data["searches"][1]["results"][0]["text"] == "chunk 2"


@pytest.mark.asyncio
async def test_batch_search_embeds_text_queries(client):
    await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/fin/chunks",
        json={"text": "Revenue grew 12% in 2023."},
    )
    await client.put(
        "/api/v1/tenants/t1/scans/S5/documents/hr/chunks",
        json={"text": "Headcount stayed flat."},
    )

    response = await client.post(
        "/api/v1/scans/S5/search/batch",
        json={"queries": ["revenue trend", "headcount trend"], "limit": 1},
    )

    searches = response.json()["searches"]
    assert [s["results"][0]["document_id"] for s in searches] == ["fin", "hr"]


@pytest.mark.asyncio
async def test_batch_search_falls_back_when_bulk_fetch_fails(app, client, seeded):
    async def flaky_store(session=Depends(get_db_session)):
        yield FirstScanQueryFailsStore(session)

    app.dependency_overrides[get_chunk_store] = flaky_store

    response = await client.post(
        "/api/v1/scans/S1/search/batch",
        json={"query_embeddings": [[1.0, 0.0]], "limit": 2},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["degraded"] is True
    assert [r["text"] for r in data["searches"][0]["results"]] == ["chunk 1", "chunk 3"]


@pytest.mark.asyncio
async def test_batch_search_is_unavailable_when_fallback_also_fails(app, client):
    broken = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    app.state.session_factory = build_session_factory(broken)

    response = await client.post(
        "/api/v1/scans/S1/search/batch", json={"query_embeddings": [[1.0, 0.0]]}
    )

    assert response.status_code == 503
    await broken.dispose()


@pytest.mark.asyncio
async def test_batch_search_on_empty_scan_is_degraded_but_ok(client):
    response = await client.post(
        "/api/v1/scans/S9/search/batch", json={"query_embeddings": [[1.0, 0.0]]}
    )

    assert response.status_code == 200
    assert response.json() == {
        "scan_id": "S9",
        "searches": [{"results": [], "total_results": 0}],
        "degraded": True,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {},
        {"queries": ["a"], "query_embeddings": [[1.0, 0.0]]},
        {"queries": ["  "]},
    ],
)
async def test_batch_search_validates_request(client, body):
    response = await client.post("/api/v1/scans/S1/search/batch", json=body)

    assert response.status_code == 422


# ── Corpus stats ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_corpus_stats_counts_per_document(client, seeded):
    await client.put(
        "/api/v1/tenants/t1/scans/S1/documents/fin/chunks",
        json={"text": "Revenue grew."},
    )

    response = await client.get("/api/v1/scans/S1/corpus/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["total_chunks"] == 4
    assert data["total_documents"] == 2
    assert [(d["document_id"], d["chunk_count"]) for d in data["documents"]] == [
        ("doc-1", 3),
        ("fin", 1),
    ]


@pytest.mark.asyncio
async def test_chat_with_blank_query_is_rejected(client):
    response = await client.post("/api/v1/scans/S1/chat", json={"query": "   "})

    assert response.status_code == 422
