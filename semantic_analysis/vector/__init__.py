"""
Vector layer: embedding providers, batched embedding generation, vector file
parsing and cosine similarity.
"""

# Package initialization for vector module
from .types import VectorRecord, SimilarityRow, SimilarityReport, RetryOutcome, BatchRunSummary
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    OpenAIEmbedding,
    OllamaEmbedding,
    SentenceTransformerEmbedding,
)
from .parser import parse_vector_line, format_vector_line
from .store import VectorStore, normalize_vector
from .similarity import SimilarityEngine, cosine_similarity, write_similarity_file
from .batcher import EmbeddingBatcher

__all__ = [
    'VectorRecord',
    'SimilarityRow',
    'SimilarityReport',
    'RetryOutcome',
    'BatchRunSummary',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'OpenAIEmbedding',
    'OllamaEmbedding',
    'SentenceTransformerEmbedding',
    'parse_vector_line',
    'format_vector_line',
    'VectorStore',
    'normalize_vector',
    'SimilarityEngine',
    'cosine_similarity',
    'write_similarity_file',
    'EmbeddingBatcher',
]
