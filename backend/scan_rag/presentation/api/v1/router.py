"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from scan_rag.presentation.api.v1.endpoints.health import router as health_router
from scan_rag.presentation.api.v1.chunks_controller import router as chunks_router
from scan_rag.presentation.api.v1.retrieval_controller import router as retrieval_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(chunks_router)
router.include_router(retrieval_router)
