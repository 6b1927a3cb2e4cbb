from .chunk_store import ChunkStore
from .embedding_provider import EmbeddingProvider
from .text_generator import TextGenerator

__all__ = [
    "ChunkStore",
    "EmbeddingProvider",
    "TextGenerator",
]
