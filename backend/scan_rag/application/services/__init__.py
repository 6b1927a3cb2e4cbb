from .corpus_service import CorpusRetrievalStrategy, CorpusService
from .grounded_answer_service import GroundedAnswerService
from .ingestion_service import ChunkCleanupService, IngestionService
from .retrieval_service import RetrievalService
from .similarity import cosine_similarity, rank_chunks

__all__ = [
    "ChunkCleanupService",
    "CorpusRetrievalStrategy",
    "CorpusService",
    "GroundedAnswerService",
    "IngestionService",
    "RetrievalService",
    "cosine_similarity",
    "rank_chunks",
]
