"""Abstract text generator interface — the black-box answer step of RAG."""

from abc import ABC, abstractmethod

from scan_rag.domain.entities.retrieval import HistoryMessage


class TextGenerator(ABC):
    """Port — turns a question plus grounding context into an answer."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'openrouter')."""
        ...

    @abstractmethod
    async def generate(
        self,
        question: str,
        context: str,
        history: list[HistoryMessage] | None = None,
    ) -> str:
        """Generate an answer for ``question`` using only ``context`` as grounding.

        Raises:
            TextGenerationError: If the provider returns an error.
        """
        ...
