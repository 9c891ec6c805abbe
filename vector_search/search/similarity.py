"""
Similarity Ranking
===================
Cosine similarity between embedding vectors and top-k ranking of a
document collection against a query vector.

    cos(a, b) = (a · b) / (‖a‖ · ‖b‖)

A zero-norm operand yields 0.0 rather than an error so that ranking stays
total.  Results are clipped to [-1, 1] to absorb floating-point drift.

Ranking is a full scan followed by a *stable* descending sort: documents
with equal scores (e.g. duplicates) keep the order they were supplied in,
so repeated searches over the same collection return identical lists.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Sequence

import numpy as np

from vector_search.errors import InvalidArgument

if TYPE_CHECKING:
    from vector_search.store.document_store import Document

logger = logging.getLogger(__name__)


@dataclass
class SimilarityResult:
    """One ranked document and its cosine similarity to the query."""
    document: "Document"
    score: float

    def to_dict(self, include_embedding: bool = False) -> Dict:
        return {
            "document": self.document.to_dict(include_embedding=include_embedding),
            "similarity": self.score,
        }


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises:
        InvalidArgument : the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape[0] != vb.shape[0]:
        raise InvalidArgument(
            f"Vectors must have the same dimensions ({va.shape[0]} != {vb.shape[0]})"
        )
    norm_a = float(np.sqrt(np.dot(va, va)))
    norm_b = float(np.sqrt(np.dot(vb, vb)))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (norm_a * norm_b), -1.0, 1.0))


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of ``query`` (dim,) against every row of
    ``matrix`` (N, dim).  Rows or query with zero norm score 0.0.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    dots = m @ q
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    scores = np.zeros(m.shape[0], dtype=np.float64)
    nonzero = norms > 0.0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    return np.clip(scores, -1.0, 1.0)


def top_k_indices(scores: np.ndarray, top_k: int) -> np.ndarray:
    """Indices of the ``top_k`` highest scores, ties in input order."""
    order = np.argsort(-scores, kind="stable")
    return order[:top_k]


def search(
    query: Sequence[float],
    documents: Sequence["Document"],
    top_k: int = 5,
) -> List[SimilarityResult]:
    """
    Score every document against ``query`` and return the best ``top_k``.

    ``documents`` is treated as a read-only snapshot; it is copied into a
    ``FlatIndex`` before scoring.

    Raises:
        InvalidArgument : top_k < 1, or a document's dimension differs
                          from the query's
    """
    from vector_search.index.flat_index import FlatIndex

    query_vec = np.asarray(query, dtype=np.float32)
    index = FlatIndex(dimension=int(query_vec.shape[0]) if query_vec.ndim == 1 else None)
    index.build(documents)
    results = index.search(query_vec, top_k=top_k)
    logger.info(
        "Search returned %d results (top_k=%d, documents=%d)",
        len(results), top_k, len(documents),
    )
    return results
