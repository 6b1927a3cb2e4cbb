"""OpenRouter API client — implements the TextGenerator interface.

Communicates with the OpenRouter API (https://openrouter.ai/api/v1)
using httpx for non-streaming chat completions grounded in retrieved
document sections.
"""

import json
import logging
from typing import Any

import httpx

from scan_rag.application.interfaces.text_generator import TextGenerator
from scan_rag.domain.entities.retrieval import HistoryMessage
from scan_rag.domain.exceptions import TextGenerationError

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """\
You are an AI assistant for a business-consulting data room. You help staff
understand the documents uploaded to a scan.

Only use information from the provided document context to answer questions
about document content. If the context does not contain the answer, say so
clearly instead of guessing.

{context}
"""


class OpenRouterTextGenerator(TextGenerator):
    """Infrastructure adapter — generates grounded answers via OpenRouter.

    Uses httpx with an optional injected client so tests can mount a
    ``MockTransport``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Scan Retrieval",
        model: str = "openai/gpt-4o-mini",
        temperature: float | None = 0.3,
        max_tokens: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._app_name = app_name
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "openrouter"

    def _get_headers(self) -> dict[str, str]:
        """Standard headers for OpenRouter requests."""
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }

    def _build_payload(
        self,
        question: str,
        context: str,
        history: list[HistoryMessage],
    ) -> dict[str, Any]:
        """Build the request payload for the OpenRouter API."""
        messages: list[dict[str, str]] = [
            {"role": "system", "content": _SYSTEM_PROMPT.format(context=context)}
        ]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": question})

        payload: dict[str, Any] = {"model": self._model, "messages": messages}
        if self._temperature is not None:
            payload["temperature"] = self._temperature
        if self._max_tokens is not None:
            payload["max_tokens"] = self._max_tokens
        return payload

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=120.0)

    async def generate(
        self,
        question: str,
        context: str,
        history: list[HistoryMessage] | None = None,
    ) -> str:
        """Send a non-streaming chat completion to OpenRouter."""
        payload = self._build_payload(question, context, history or [])
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            try:
                response = await client.post(
                    url, headers=self._get_headers(), json=payload
                )
            except httpx.HTTPError as exc:
                raise TextGenerationError(
                    provider=self.provider_name, status_code=503, message=str(exc)
                ) from exc

            if response.status_code != 200:
                self._raise_provider_error(response)

            return self._parse_completion_response(response.json())

        finally:
            if should_close:
                await client.aclose()

    def _parse_completion_response(self, data: dict) -> str:
        """Extract the answer text from the OpenRouter JSON response."""
        if "error" in data:
            error = data["error"]
            raise TextGenerationError(
                provider=self.provider_name,
                status_code=error.get("code", 500),
                message=error.get("message", "Unknown error"),
            )

        choices = data.get("choices", [])
        if not choices:
            raise TextGenerationError(
                provider=self.provider_name,
                status_code=500,
                message="No choices in response",
            )

        message = choices[0].get("message", {})
        logger.info(
            "Generated answer (model=%s, tokens=%s)",
            data.get("model", self._model),
            data.get("usage", {}).get("total_tokens", "?"),
        )
        return message.get("content", "") or ""

    def _raise_provider_error(self, response: httpx.Response) -> None:
        """Raise TextGenerationError from a non-200 httpx Response."""
        try:
            data = response.json()
            error = data.get("error", {})
            message = error.get("message", response.text)
        except (json.JSONDecodeError, AttributeError):
            message = response.text

        raise TextGenerationError(
            provider=self.provider_name,
            status_code=response.status_code,
            message=message,
        )
