"""Health check endpoint — no dependencies, always available."""

from fastapi import APIRouter, Request

from scan_rag.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Returns the current application health status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "embeddings_configured": getattr(request.app.state, "embedding_provider", None) is not None,
    }
