"""Abstract repository interface (port) for document chunk persistence."""

from abc import ABC, abstractmethod

from scan_rag.domain.entities.document_chunk import DocumentChunk


class ChunkStore(ABC):
    """Port for chunk persistence, partitioned by tenant.

    Every write and every point read/delete names the partition key
    explicitly. Scan-scoped queries filter by ``scan_id`` in the store
    query itself, so another scan's rows are never loaded.

    Implementations raise ``ChunkStoreError`` on connectivity or
    authorization failures and ``PartitionKeyError`` on a missing or
    mismatched partition key.
    """

    @abstractmethod
    async def get(self, chunk_id: str, partition_key: str) -> DocumentChunk | None:
        """Point lookup by id within one partition."""
        ...

    @abstractmethod
    async def query_by_scan(self, scan_id: str) -> list[DocumentChunk]:
        """Return every chunk of a scan, in insertion order."""
        ...

    @abstractmethod
    async def query_by_document(self, document_id: str, scan_id: str) -> list[DocumentChunk]:
        """Return every chunk extracted from one document of a scan."""
        ...

    @abstractmethod
    async def insert(self, chunk: DocumentChunk, partition_key: str) -> None:
        """Persist a new chunk under the given partition."""
        ...

    @abstractmethod
    async def delete_by_id(self, chunk_id: str, partition_key: str) -> bool:
        """Delete one chunk. Returns False when it did not exist."""
        ...
