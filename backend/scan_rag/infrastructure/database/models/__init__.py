from .document_chunk_model import DocumentChunkModel

__all__ = [
    "DocumentChunkModel",
]
