"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scan_rag.config import Settings, get_settings
from scan_rag.infrastructure.database import Base, build_engine, build_session_factory
from scan_rag.infrastructure.logging.log_config import setup_logging
from scan_rag.infrastructure.openrouter import OpenRouterEmbeddingProvider, OpenRouterTextGenerator
from scan_rag.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _build_openrouter_clients(
    settings: Settings, http_client: httpx.AsyncClient
) -> tuple[OpenRouterEmbeddingProvider | None, OpenRouterTextGenerator | None]:
    """Construct the embedding provider and text generator once per process."""
    api_key = settings.openrouter_api_key.strip()
    if not api_key:
        logger.warning(
            "OPENROUTER_API_KEY is not configured; embedding and answer generation are disabled."
        )
        return None, None

    embedding_provider = OpenRouterEmbeddingProvider(
        api_key=api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        model=settings.embedding_model,
        model_dimensions=settings.embedding_dimensions,
        max_input_chars=settings.embedding_max_input_chars,
        http_client=http_client,
    )
    text_generator = OpenRouterTextGenerator(
        api_key=api_key,
        base_url=settings.openrouter_base_url,
        app_name=settings.openrouter_app_name,
        model=settings.generation_model,
        temperature=settings.generation_temperature,
        http_client=http_client,
    )
    return embedding_provider, text_generator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — build engine and clients, create tables, clean up."""
    settings = get_settings()
    setup_logging(settings)

    # 1. Database engine + per-request session factory
    engine = build_engine(settings.database_url, echo=(settings.app_env == "development"))
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # 2. Shared HTTP client for the OpenRouter adapters
    http_client = httpx.AsyncClient(timeout=120.0)
    app.state.embedding_provider, app.state.text_generator = _build_openrouter_clients(
        settings, http_client
    )
    logger.info("Scan retrieval API started (env=%s)", settings.app_env)

    yield

    # Shutdown
    await http_client.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scan_rag.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
