"""
Flat Vector Index
==================
Exact (brute-force) cosine search over an in-memory snapshot of documents.

Why brute force?
  - The collections served here are small (thousands of documents), so a
    full O(N·d) scan per query is fast with a single matrix-vector product.
  - Recall is always 100 %, and ties are resolved deterministically:
    documents with equal scores keep the order they were added in.

The index stores the document vectors as one ``(N, dim)`` float32 matrix
plus a parallel tuple of documents; ``matrix[i]`` belongs to
``documents[i]``.  The matrix is copied on build, so later mutation of the
caller's documents does not affect a running search.

An approximate index (IVF, HNSW, ...) can replace this class later as long
as it keeps the same ``search(query, top_k)`` contract.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from vector_search.errors import InvalidArgument
from vector_search.search.similarity import SimilarityResult, cosine_scores, top_k_indices
from vector_search.store.document_store import Document

logger = logging.getLogger(__name__)


class FlatIndex:
    """
    Usage:
        idx = FlatIndex(dimension=384)
        idx.build(store.list_all())
        results = idx.search(query_vector, top_k=5)
    """

    def __init__(self, dimension: Optional[int] = None):
        """
        Args:
            dimension : expected vector size; inferred from the first
                        document when omitted
        """
        self.dimension = dimension
        self._documents: Tuple[Document, ...] = ()
        self._matrix: Optional[np.ndarray] = None

    @property
    def size(self) -> int:
        return len(self._documents)

    def _stack(self, documents: Sequence[Document]) -> np.ndarray:
        if self.dimension is None and documents:
            self.dimension = int(documents[0].embedding.shape[0])
        for doc in documents:
            if doc.embedding.ndim != 1 or doc.embedding.shape[0] != self.dimension:
                raise InvalidArgument(
                    f"Document {doc.id} has embedding dimension "
                    f"{doc.embedding.shape[-1] if doc.embedding.ndim else 0}, "
                    f"index dimension is {self.dimension}"
                )
        if not documents:
            return np.empty((0, self.dimension or 0), dtype=np.float32)
        return np.stack([doc.embedding for doc in documents]).astype(np.float32)

    def build(self, documents: Iterable[Document]) -> "FlatIndex":
        """Replace the index contents with ``documents`` (order preserved)."""
        docs = tuple(documents)
        self._matrix = self._stack(docs)
        self._documents = docs
        logger.debug("Built flat index: %d vectors, dim=%s", self.size, self.dimension)
        return self

    def add(self, documents: Iterable[Document]) -> None:
        """Append documents after the existing ones."""
        docs = tuple(documents)
        if not docs:
            return
        if self._matrix is None or self.size == 0:
            self.build(docs)
            return
        prev_size = self.size
        self._matrix = np.concatenate([self._matrix, self._stack(docs)], axis=0)
        self._documents = self._documents + docs
        logger.debug("Incremental add: %d -> %d vectors", prev_size, self.size)

    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[SimilarityResult]:
        """
        Rank every document against ``query_vector``.

        Returns at most ``top_k`` results, highest cosine similarity first;
        asking for more than ``size`` returns everything.

        Raises:
            InvalidArgument : top_k < 1, or the query dimension differs
                              from the index dimension
        """
        if top_k < 1:
            raise InvalidArgument(f"top_k must be >= 1, got {top_k}")
        query = np.asarray(query_vector, dtype=np.float32)
        if query.ndim != 1:
            raise InvalidArgument(f"Query vector must be 1-D (got {query.ndim}-D)")
        if self.size == 0:
            logger.warning("Search called on empty index")
            return []
        if query.shape[0] != self.dimension:
            raise InvalidArgument(
                f"Query dimension {query.shape[0]} does not match "
                f"index dimension {self.dimension}"
            )

        scores = cosine_scores(query, self._matrix)
        order = top_k_indices(scores, top_k)
        return [
            SimilarityResult(document=self._documents[i], score=float(scores[i]))
            for i in order
        ]
