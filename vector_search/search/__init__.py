"""
Search subpackage -- cosine similarity and top-k ranking.
"""

from vector_search.search.similarity import (
    SimilarityResult,
    cosine_scores,
    cosine_similarity,
    search,
    top_k_indices,
)
