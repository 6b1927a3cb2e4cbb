"""OpenRouter infrastructure package."""

from .openrouter_client import OpenRouterTextGenerator
from .openrouter_embedding_provider import OpenRouterEmbeddingProvider

__all__ = ["OpenRouterTextGenerator", "OpenRouterEmbeddingProvider"]
