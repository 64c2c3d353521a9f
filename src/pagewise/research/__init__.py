"""Embedding-backed relevance ranking."""

from pagewise.research.embeddings import (
    EmbeddingCache,
    EmbeddingProvider,
    HTTPEmbeddingProvider,
    SentenceTransformerProvider,
    create_embedding_provider,
)
from pagewise.research.query_extraction import extract_search_terms
from pagewise.research.ranker import SimilarityRanker, cosine_similarity, relevance_label

__all__ = [
    "EmbeddingCache",
    "EmbeddingProvider",
    "HTTPEmbeddingProvider",
    "SentenceTransformerProvider",
    "SimilarityRanker",
    "cosine_similarity",
    "create_embedding_provider",
    "extract_search_terms",
    "relevance_label",
]
