"""Pydantic schemas for chunk ingestion and deletion."""

from pydantic import BaseModel, Field


class IngestDocumentRequest(BaseModel):
    """Already-extracted document text to chunk, embed and store."""

    text: str = Field(..., description="Plain text extracted from the uploaded document")


class IngestDocumentResponse(BaseModel):
    tenant_id: str
    scan_id: str
    document_id: str
    chunks_stored: int


class DeleteChunksResponse(BaseModel):
    tenant_id: str
    scan_id: str
    document_id: str | None = None
    chunks_deleted: int
