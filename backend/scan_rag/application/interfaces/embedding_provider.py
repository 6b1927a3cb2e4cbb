"""Abstract interface (port) for embedding generation."""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Port for generating text embeddings — implemented in the infrastructure layer."""

    @abstractmethod
    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors, one per input text.
            Each vector has the same dimensionality (determined by the model).

        Raises:
            EmbeddingProviderError: On network, auth or malformed responses.
        """
        ...

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Generate a single embedding for a search query.

        Raises:
            EmbeddingProviderError: If the text is empty or no vector came back.
        """
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the dimensionality of the embedding vectors produced by this provider."""
        ...
