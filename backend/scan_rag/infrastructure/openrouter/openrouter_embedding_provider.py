"""OpenRouter-based embedding provider — calls the OpenAI-compatible /embeddings endpoint.

Uses the same httpx client pattern as OpenRouterTextGenerator.
"""

import logging
from typing import Any

import httpx

from scan_rag.application.interfaces.embedding_provider import EmbeddingProvider
from scan_rag.domain.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)

_PROVIDER_NAME = "openrouter"

# nomic-embed-text models require a task prefix; OpenAI/Gemini models do not.
_NOMIC_DOCUMENT_PREFIX = "search_document: "
_NOMIC_QUERY_PREFIX = "search_query: "


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter — generates embeddings via the /embeddings API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Scan Retrieval",
        model: str = "openai/text-embedding-ada-002",
        model_dimensions: int = 1536,
        max_input_chars: int = 10000,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._model = model
        self._dimensions = model_dimensions
        self._max_input_chars = max_input_chars
        self._http_client = http_client

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=120.0)

    @property
    def _is_nomic(self) -> bool:
        """Whether the configured model is a nomic model requiring task prefixes."""
        return "nomic" in self._model.lower()

    def _prepare(self, text: str, *, query_mode: bool) -> str:
        if len(text) > self._max_input_chars:
            logger.info(
                "Text was truncated from %d to %d characters", len(text), self._max_input_chars
            )
            text = text[: self._max_input_chars]
        if self._is_nomic:
            prefix = _NOMIC_QUERY_PREFIX if query_mode else _NOMIC_DOCUMENT_PREFIX
            text = f"{prefix}{text}"
        return text

    async def generate_embeddings(
        self,
        texts: list[str],
        *,
        _query_mode: bool = False,
    ) -> list[list[float]]:
        """Generate embeddings for a batch of texts, in input order."""
        if not texts:
            return []

        url = f"{self._base_url}/embeddings"
        payload: dict[str, Any] = {
            "model": self._model,
            "input": [self._prepare(t, query_mode=_query_mode) for t in texts],
            "dimensions": self._dimensions,
        }

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            try:
                response = await client.post(
                    url, headers=self._get_headers(), json=payload
                )
            except httpx.HTTPError as exc:
                logger.error("Embedding request failed: %s", exc)
                raise EmbeddingProviderError(
                    provider=_PROVIDER_NAME, status_code=503, message=str(exc)
                ) from exc

            if response.status_code != 200:
                error_text = response.text[:500]
                logger.error(
                    "Embedding API error %d: %s", response.status_code, error_text
                )
                raise EmbeddingProviderError(
                    provider=_PROVIDER_NAME,
                    status_code=response.status_code,
                    message=error_text,
                )

            try:
                data = response.json()
                embeddings_data = data.get("data", [])

                # Sort by index to ensure correct ordering
                embeddings_data.sort(key=lambda x: x.get("index", 0))
                result = [item["embedding"] for item in embeddings_data]
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.error("Malformed embedding response: %s", exc)
                raise EmbeddingProviderError(
                    provider=_PROVIDER_NAME,
                    status_code=502,
                    message=f"Malformed embedding response: {exc}",
                ) from exc

            if len(result) != len(texts):
                raise EmbeddingProviderError(
                    provider=_PROVIDER_NAME,
                    status_code=502,
                    message=f"Expected {len(texts)} embeddings, got {len(result)}",
                )

            logger.info(
                "Generated %d embeddings (model=%s, dims=%d)",
                len(result),
                self._model,
                len(result[0]) if result else 0,
            )
            return result

        finally:
            if should_close:
                await client.aclose()

    async def embed_query(self, text: str) -> list[float]:
        """Generate a single embedding for a search query."""
        if not text or not text.strip():
            raise EmbeddingProviderError(
                provider=_PROVIDER_NAME,
                status_code=400,
                message="Cannot embed empty query text",
            )

        results = await self.generate_embeddings([text], _query_mode=True)
        if not results or not results[0]:
            raise EmbeddingProviderError(
                provider=_PROVIDER_NAME,
                status_code=502,
                message="Embedding API returned an empty vector",
            )
        return results[0]
