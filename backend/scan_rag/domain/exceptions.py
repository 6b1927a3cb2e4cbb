"""Domain-specific exceptions — framework-independent."""


class ChunkStoreError(Exception):
    """Raised when the chunk store cannot be reached or rejects a request.

    Distinct from an empty result: a scan without chunks returns ``[]``,
    a broken store raises this.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"Chunk store {operation} failed: {message}")


class PartitionKeyError(ValueError):
    """Raised when a write or point operation is missing its partition key."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmbeddingProviderError(Exception):
    """Raised when the embedding provider fails or returns no usable vector."""

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class EmbeddingDimensionError(ValueError):
    """Raised at ingestion when a vector does not match the corpus dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding has {actual} dimensions, expected {expected}"
        )


class TextGenerationError(Exception):
    """Raised when the text-generation provider returns an error.

    Provider-agnostic — works for OpenRouter, Azure OpenAI, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")
