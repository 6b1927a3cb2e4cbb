"""FastAPI dependency injection — wires infrastructure to application layer.

Long-lived clients (embedding provider, text generator) are constructed in
the application lifespan and read from ``app.state``; per-request objects
(chunk store, services) are built here around the request's DB session.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from scan_rag.application.interfaces import ChunkStore, EmbeddingProvider, TextGenerator
from scan_rag.application.services import (
    ChunkCleanupService,
    CorpusRetrievalStrategy,
    CorpusService,
    GroundedAnswerService,
    IngestionService,
    RetrievalService,
)
from scan_rag.config import get_settings
from scan_rag.infrastructure.database.repositories import SQLAlchemyChunkStore
from scan_rag.infrastructure.database.session import get_db_session


def get_embedding_provider(request: Request) -> EmbeddingProvider:
    """Provides the shared embedding provider, or 503 when none is configured."""
    provider = getattr(request.app.state, "embedding_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Embedding provider is not configured (OPENROUTER_API_KEY missing)",
        )
    return provider


def get_optional_embedding_provider(request: Request) -> EmbeddingProvider | None:
    """Like get_embedding_provider, for endpoints that may not need to embed."""
    return getattr(request.app.state, "embedding_provider", None)


def get_text_generator(request: Request) -> TextGenerator | None:
    """Provides the shared text generator; None degrades answers to raw snippets."""
    return getattr(request.app.state, "text_generator", None)


async def get_chunk_store(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[ChunkStore, None]:
    """Provides a ChunkStore bound to the request's session."""
    yield SQLAlchemyChunkStore(session)


async def get_retrieval_service(
    chunk_store: ChunkStore = Depends(get_chunk_store),
) -> AsyncGenerator[RetrievalService, None]:
    settings = get_settings()
    yield RetrievalService(chunk_store, default_limit=settings.default_top_k)


async def get_corpus_service(
    chunk_store: ChunkStore = Depends(get_chunk_store),
) -> AsyncGenerator[CorpusService, None]:
    yield CorpusService(chunk_store)


async def get_corpus_retrieval_strategy(
    corpus_service: CorpusService = Depends(get_corpus_service),
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
) -> AsyncGenerator[CorpusRetrievalStrategy, None]:
    """Provides an unloaded two-tier strategy; callers `load()` it per scan."""
    yield CorpusRetrievalStrategy(corpus_service, retrieval_service)


async def get_ingestion_service(
    chunk_store: ChunkStore = Depends(get_chunk_store),
    embedding_provider: EmbeddingProvider = Depends(get_embedding_provider),
) -> AsyncGenerator[IngestionService, None]:
    """Provides an IngestionService with chunking settings applied."""
    settings = get_settings()
    yield IngestionService(
        embedding_provider=embedding_provider,
        chunk_store=chunk_store,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        batch_size=settings.embedding_batch_size,
    )


async def get_chunk_cleanup_service(
    chunk_store: ChunkStore = Depends(get_chunk_store),
) -> AsyncGenerator[ChunkCleanupService, None]:
    yield ChunkCleanupService(chunk_store)


async def get_grounded_answer_service(
    embedding_provider: EmbeddingProvider = Depends(get_embedding_provider),
    retrieval_service: RetrievalService = Depends(get_retrieval_service),
    text_generator: TextGenerator | None = Depends(get_text_generator),
) -> AsyncGenerator[GroundedAnswerService, None]:
    yield GroundedAnswerService(
        embedding_provider=embedding_provider,
        retrieval_service=retrieval_service,
        text_generator=text_generator,
    )
