"""SQLAlchemy ORM model for document chunks with their embedding vectors."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from scan_rag.infrastructure.database.base import Base


class DocumentChunkModel(Base):
    """ORM model — maps to the 'document_chunks' table.

    ``pk`` is a surrogate key that fixes retrieval order to insertion
    order. ``(tenant_id, id)`` is the logical identity: the tenant is the
    partition key every write and point lookup must supply.

    Embeddings are plain JSON arrays; similarity is computed in process
    by a linear scan over one scan's rows, so no vector index is declared.
    """

    __tablename__ = "document_chunks"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    scan_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    document_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "id", name="uq_chunk_partition_identity"),
        Index("idx_chunks_scan_document", "scan_id", "document_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentChunkModel(id='{self.id}', tenant_id='{self.tenant_id}', "
            f"scan_id='{self.scan_id}', document_id='{self.document_id}')>"
        )
