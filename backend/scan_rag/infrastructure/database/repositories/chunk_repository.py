"""SQLAlchemy implementation of ChunkStore — tenant-partitioned chunk persistence."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scan_rag.application.interfaces.chunk_store import ChunkStore
from scan_rag.domain.entities.document_chunk import DocumentChunk
from scan_rag.domain.exceptions import ChunkStoreError, PartitionKeyError
from scan_rag.infrastructure.database.models.document_chunk_model import DocumentChunkModel

logger = logging.getLogger(__name__)

# Driver-level connection failures (asyncpg/aiosqlite) can escape as OSError.
_STORE_ERRORS = (SQLAlchemyError, OSError)


def _require_partition_key(partition_key: str) -> None:
    if not partition_key or not partition_key.strip():
        raise PartitionKeyError("partition_key is required for chunk writes and point operations")


class SQLAlchemyChunkStore(ChunkStore):
    """Concrete chunk store backed by a relational table.

    Scan-scoped reads filter on ``scan_id`` in SQL and return rows in
    insertion order. Writes and point operations are bound to the tenant
    partition named by the caller.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, model: DocumentChunkModel) -> DocumentChunk:
        """Map ORM model → domain entity."""
        return DocumentChunk(
            id=model.id,
            tenant_id=model.tenant_id,
            scan_id=model.scan_id,
            document_id=model.document_id,
            chunk_index=model.chunk_index,
            text=model.text,
            embedding=list(model.embedding or []),
            created_at=model.created_at,
        )

    def _to_model(self, entity: DocumentChunk, partition_key: str) -> DocumentChunkModel:
        """Map domain entity → ORM model (for creation)."""
        return DocumentChunkModel(
            id=entity.id,
            tenant_id=partition_key,
            scan_id=entity.scan_id,
            document_id=entity.document_id,
            chunk_index=entity.chunk_index,
            text=entity.text,
            embedding=list(entity.embedding),
            created_at=entity.created_at,
        )

    async def get(self, chunk_id: str, partition_key: str) -> DocumentChunk | None:
        _require_partition_key(partition_key)
        stmt = select(DocumentChunkModel).where(
            DocumentChunkModel.tenant_id == partition_key,
            DocumentChunkModel.id == chunk_id,
        )
        try:
            result = await self._session.execute(stmt)
        except _STORE_ERRORS as exc:
            raise self._store_error("get", exc) from exc
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def query_by_scan(self, scan_id: str) -> list[DocumentChunk]:
        stmt = (
            select(DocumentChunkModel)
            .where(DocumentChunkModel.scan_id == scan_id)
            .order_by(DocumentChunkModel.pk)
        )
        try:
            result = await self._session.execute(stmt)
        except _STORE_ERRORS as exc:
            raise await self._failed_read("query_by_scan", exc) from exc
        return [self._to_entity(m) for m in result.scalars().all()]

    async def query_by_document(self, document_id: str, scan_id: str) -> list[DocumentChunk]:
        stmt = (
            select(DocumentChunkModel)
            .where(
                DocumentChunkModel.scan_id == scan_id,
                DocumentChunkModel.document_id == document_id,
            )
            .order_by(DocumentChunkModel.pk)
        )
        try:
            result = await self._session.execute(stmt)
        except _STORE_ERRORS as exc:
            raise await self._failed_read("query_by_document", exc) from exc
        return [self._to_entity(m) for m in result.scalars().all()]

    async def insert(self, chunk: DocumentChunk, partition_key: str) -> None:
        _require_partition_key(partition_key)
        if chunk.tenant_id and chunk.tenant_id != partition_key:
            raise PartitionKeyError(
                f"Chunk {chunk.id} is owned by tenant '{chunk.tenant_id}' "
                f"but was written to partition '{partition_key}'"
            )

        self._session.add(self._to_model(chunk, partition_key))
        try:
            await self._session.flush()
        except _STORE_ERRORS as exc:
            raise self._store_error("insert", exc) from exc
        logger.debug("Stored chunk %s for document %s", chunk.id, chunk.document_id)

    async def delete_by_id(self, chunk_id: str, partition_key: str) -> bool:
        _require_partition_key(partition_key)
        stmt = delete(DocumentChunkModel).where(
            DocumentChunkModel.tenant_id == partition_key,
            DocumentChunkModel.id == chunk_id,
        )
        try:
            result = await self._session.execute(stmt)
        except _STORE_ERRORS as exc:
            raise self._store_error("delete_by_id", exc) from exc
        return result.rowcount > 0

    @staticmethod
    def _store_error(operation: str, exc: Exception) -> ChunkStoreError:
        logger.error("Chunk store %s failed: %s", operation, exc)
        return ChunkStoreError(operation=operation, message=str(exc))

    async def _failed_read(self, operation: str, exc: Exception) -> ChunkStoreError:
        """Roll back after a failed read so the session can serve a retry.

        Reads run before any write of the request, so nothing pending is lost.
        """
        try:
            await self._session.rollback()
        except _STORE_ERRORS as rollback_exc:
            logger.warning("Rollback after failed %s also failed: %s", operation, rollback_exc)
        return self._store_error(operation, exc)
