"""Cosine similarity ranking over in-memory candidate chunks.

Ranking is an exact linear scan. A zero score is the "no signal" value for
absent, mismatched, zero-norm or non-finite vectors; it never raises.
"""

import math
from collections.abc import Iterable, Sequence

from scan_rag.domain.entities.retrieval import CorpusChunk, ScoredChunk


def cosine_similarity(
    vec_a: Sequence[float] | None,
    vec_b: Sequence[float] | None,
) -> float:
    """Return dot(a, b) / (|a| * |b|), or 0.0 when the vectors cannot be compared."""
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0

    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0
    try:
        for a, b in zip(vec_a, vec_b):
            dot_product += a * b
            norm_a += a * a
            norm_b += b * b
    except TypeError:
        # Non-numeric entries in a stored embedding
        return 0.0

    # NaN/inf entries would poison the sort order
    if not (math.isfinite(dot_product) and math.isfinite(norm_a) and math.isfinite(norm_b)):
        return 0.0

    norm_a = math.sqrt(norm_a)
    norm_b = math.sqrt(norm_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def score_chunks(
    query_embedding: Sequence[float] | None,
    candidates: Iterable[CorpusChunk],
) -> list[ScoredChunk]:
    """Score every candidate against the query, preserving candidate order."""
    return [
        ScoredChunk(
            text=candidate.text,
            score=cosine_similarity(query_embedding, candidate.embedding),
            document_id=candidate.document_id,
            chunk_id=candidate.chunk_id,
        )
        for candidate in candidates
    ]


def rank_chunks(
    query_embedding: Sequence[float] | None,
    candidates: Iterable[CorpusChunk],
    limit: int,
) -> list[ScoredChunk]:
    """Score, sort by descending similarity and keep the top ``limit``.

    ``sorted`` is stable, so equal scores keep their retrieval order.
    """
    if limit <= 0:
        return []
    scored = score_chunks(query_embedding, candidates)
    ranked = sorted(scored, key=lambda item: item.score, reverse=True)
    return ranked[:limit]
