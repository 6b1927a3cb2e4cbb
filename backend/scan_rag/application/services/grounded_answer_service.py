"""Grounded answer service — the RAG caller that sits on top of scoped retrieval.

Flow:
  1. Embed the question via the EmbeddingProvider.
  2. Retrieve the top-K chunks of the scan via RetrievalService.
  3. Assemble a context block and hand it to the TextGenerator.

Degradation rules:
  - No chunks found → neutral "no relevant information" answer.
  - Store unreachable → ungrounded answer flagged ``retrieval_failed``.
  - Generator failure → raw document snippets instead of a generated answer.
Embedding failures propagate: without a query vector nothing can be ranked.
"""

import logging

from scan_rag.application.interfaces.embedding_provider import EmbeddingProvider
from scan_rag.application.interfaces.text_generator import TextGenerator
from scan_rag.application.services.retrieval_service import DEFAULT_TOP_K, RetrievalService
from scan_rag.domain.entities.retrieval import GroundedAnswer, HistoryMessage, ScoredChunk
from scan_rag.domain.exceptions import ChunkStoreError, TextGenerationError

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = (
    "I don't have any relevant information about that in the documents you've uploaded. "
    "Please try asking something else or upload more documents."
)
RETRIEVAL_FAILED_MESSAGE = (
    "The document store is currently unavailable, so this answer could not be "
    "grounded in your uploaded documents. Please try again shortly."
)
_RAW_SNIPPET_CHARS = 500


def build_context(results: list[ScoredChunk]) -> str:
    """Format ranked snippets into the context block consumed by the generator."""
    lines = ["Document Content:"]
    for index, result in enumerate(results, start=1):
        lines.append(f"Document section {index}:")
        lines.append(f"{result.text}\n")
    return "\n".join(lines)


def build_raw_answer(results: list[ScoredChunk]) -> str:
    """Plain snippet listing used when the generator is unavailable."""
    sections = []
    for index, result in enumerate(results, start=1):
        snippet = result.text[:_RAW_SNIPPET_CHARS]
        if len(result.text) > _RAW_SNIPPET_CHARS:
            snippet += "..."
        sections.append(f"- **Document section {index}:**\n   {snippet}")
    return "Based on the documents you've uploaded, here's what I found:\n\n" + "\n\n".join(sections)


class GroundedAnswerService:
    """Answers questions about a scan's documents with retrieved grounding."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        retrieval_service: RetrievalService,
        text_generator: TextGenerator | None = None,
    ):
        self._embedding_provider = embedding_provider
        self._retrieval_service = retrieval_service
        self._text_generator = text_generator

    async def answer(
        self,
        scan_id: str,
        question: str,
        *,
        history: list[HistoryMessage] | None = None,
        limit: int = DEFAULT_TOP_K,
    ) -> GroundedAnswer:
        embedding = await self._embedding_provider.embed_query(question)

        try:
            results = await self._retrieval_service.search_similar_documents(
                embedding, scan_id, limit
            )
        except ChunkStoreError as exc:
            logger.error("Retrieval failed for scan %s, answering ungrounded: %s", scan_id, exc)
            return GroundedAnswer(
                query=question,
                message=RETRIEVAL_FAILED_MESSAGE,
                retrieval_failed=True,
            )

        if not results:
            return GroundedAnswer(query=question, message=NO_RESULTS_MESSAGE)

        if self._text_generator is None:
            logger.info("No text generator configured, returning raw document sections")
            return GroundedAnswer(
                query=question,
                message=build_raw_answer(results),
                results=results,
                grounded=True,
            )

        try:
            message = await self._text_generator.generate(
                question, build_context(results), history or []
            )
        except TextGenerationError as exc:
            logger.warning("Text generation failed (%s), returning raw document sections", exc)
            return GroundedAnswer(
                query=question,
                message=build_raw_answer(results),
                results=results,
                grounded=True,
            )

        return GroundedAnswer(
            query=question,
            message=message,
            results=results,
            grounded=True,
            generated=True,
        )
