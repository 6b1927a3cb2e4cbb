"""Colored ingestion logger — ANSI-colored console logging for the chunk ingestion pipeline.

Each ingestion stage gets its own color so a document's path from raw text
to stored chunks can be followed in the terminal.

Color scheme:
    Yellow  — Chunking
    Magenta — Embedding
    Blue    — Dimension validation
    Green   — Store writes / deletes
    Red     — Errors
    Gray    — Details / stats
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


Stage = tuple[str, str, str]


class IngestionStage:
    """Predefined ingestion stages as (label, color, icon)."""

    CHUNK = ("CHUNK", _Colors.YELLOW, "✂️")
    EMBED = ("EMBED", _Colors.MAGENTA, "🧮")
    VALIDATE = ("VALIDATE", _Colors.BLUE, "📏")
    STORE = ("STORE", _Colors.GREEN, "💾")
    DELETE = ("DELETE", _Colors.GREEN, "🗑️")
    PIPELINE = ("PIPELINE", _Colors.WHITE, "⚙️")
    ERROR = ("ERROR", _Colors.RED, "❌")
    COMPLETE = ("COMPLETE", _Colors.GREEN, "✅")


class PipelineLogger:
    """Color-coded logger for chunk ingestion.

    Usage:
        log = PipelineLogger("IngestionService")
        log.step_start(IngestionStage.CHUNK, "Splitting report.pdf", chars=48213)
        log.detail("41 chunks")
        log.step_complete(IngestionStage.CHUNK, "Split into 41 chunks")
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)
        self._component = component_name

    @staticmethod
    def _format_details(kwargs: dict[str, Any]) -> str:
        return " | ".join(f"{k}={v}" for k, v in kwargs.items())

    def step_start(self, stage: Stage, message: str, **kwargs: Any) -> None:
        """Log the start of an ingestion step with its stage color."""
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        if kwargs:
            formatted += f" {_Colors.GRAY}({self._format_details(kwargs)}){_Colors.RESET}"
        self._logger.info(formatted)

    def step_complete(self, stage: Stage, message: str, **kwargs: Any) -> None:
        """Log the successful completion of an ingestion step."""
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        if kwargs:
            formatted += f" {_Colors.GRAY}({self._format_details(kwargs)}){_Colors.RESET}"
        self._logger.info(formatted)

    def step_error(self, stage: Stage, message: str, error: Exception | None = None) -> None:
        """Log an ingestion step error in red."""
        label, _, _ = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        """Log additional detail (gray/dimmed)."""
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        if kwargs:
            formatted += f" {_Colors.DIM}({self._format_details(kwargs)}){_Colors.RESET}"
        self._logger.info(formatted)

    def separator(self, title: str = "") -> None:
        """Log a visual separator line."""
        if title:
            self._logger.info(
                f"{_Colors.GRAY}{'─' * 10} {title} {'─' * max(0, 50 - len(title))}{_Colors.RESET}"
            )
        else:
            self._logger.info(f"{_Colors.GRAY}{'─' * 60}{_Colors.RESET}")

    def stats(self, **kwargs: Any) -> None:
        """Log statistics / timing information."""
        parts = [f"{k}: {v}" for k, v in kwargs.items()]
        self._logger.info(f"   {_Colors.GRAY}📈 {' | '.join(parts)}{_Colors.RESET}")

    @contextmanager
    def timed_step(self, stage: Stage, message: str, **kwargs: Any):
        """Context manager that logs start/end with elapsed time.

        Usage:
            with log.timed_step(IngestionStage.EMBED, "Embedding 41 chunks"):
                vectors = await provider.generate_embeddings(texts)
        """
        self.step_start(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} — {elapsed:.2f}s")
