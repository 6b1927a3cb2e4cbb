from .chunk_repository import SQLAlchemyChunkStore

__all__ = [
    "SQLAlchemyChunkStore",
]
