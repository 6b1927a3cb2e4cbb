"""Chunks API controller — ingest and delete a scan's document chunks."""

from fastapi import APIRouter, Depends, HTTPException, status

from scan_rag.application.schemas import (
    DeleteChunksResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
)
from scan_rag.application.services import ChunkCleanupService, IngestionService
from scan_rag.domain.exceptions import (
    ChunkStoreError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    PartitionKeyError,
)
from scan_rag.infrastructure.dependencies import get_chunk_cleanup_service, get_ingestion_service

router = APIRouter(prefix="/tenants/{tenant_id}/scans/{scan_id}", tags=["chunks"])


def _raise_http(exc: Exception) -> None:
    """Translate domain failures into HTTP errors."""
    if isinstance(exc, ChunkStoreError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, EmbeddingProviderError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, (EmbeddingDimensionError, PartitionKeyError)):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    raise exc


@router.put(
    "/documents/{document_id}/chunks",
    response_model=IngestDocumentResponse,
)
async def ingest_document(
    tenant_id: str,
    scan_id: str,
    document_id: str,
    body: IngestDocumentRequest,
    service: IngestionService = Depends(get_ingestion_service),
):
    """Replace a document's chunks with freshly embedded ones."""
    try:
        stored = await service.ingest_document(tenant_id, scan_id, document_id, body.text)
    except (ChunkStoreError, EmbeddingProviderError, EmbeddingDimensionError, PartitionKeyError) as e:
        _raise_http(e)

    return IngestDocumentResponse(
        tenant_id=tenant_id,
        scan_id=scan_id,
        document_id=document_id,
        chunks_stored=stored,
    )


@router.delete(
    "/documents/{document_id}/chunks",
    response_model=DeleteChunksResponse,
)
async def delete_document_chunks(
    tenant_id: str,
    scan_id: str,
    document_id: str,
    service: ChunkCleanupService = Depends(get_chunk_cleanup_service),
):
    """Delete every chunk of one document."""
    try:
        deleted = await service.delete_document(tenant_id, scan_id, document_id)
    except (ChunkStoreError, PartitionKeyError) as e:
        _raise_http(e)

    return DeleteChunksResponse(
        tenant_id=tenant_id,
        scan_id=scan_id,
        document_id=document_id,
        chunks_deleted=deleted,
    )


@router.delete("/chunks", response_model=DeleteChunksResponse)
async def delete_scan_chunks(
    tenant_id: str,
    scan_id: str,
    service: ChunkCleanupService = Depends(get_chunk_cleanup_service),
):
    """Delete every chunk of a scan (called when the scan itself is deleted)."""
    try:
        deleted = await service.delete_scan(tenant_id, scan_id)
    except (ChunkStoreError, PartitionKeyError) as e:
        _raise_http(e)

    return DeleteChunksResponse(tenant_id=tenant_id, scan_id=scan_id, chunks_deleted=deleted)
