"""
Vector Search Service
======================
The operations a transport layer (HTTP handler, CLI, notebook) calls:

    embed(text)                    -> EmbeddingResult
    embed_many(texts)              -> BatchEmbeddingResult
    similarity(text1, text2)       -> SimilarityReport
    list_documents()               -> List[Document]
    search(query_text, top_k)      -> SearchReport

Queries and similarity inputs get the model's query prefix
(``"query: "`` for e5); stored documents were embedded with the passage
prefix at preparation time.  ``embed``/``embed_many`` embed the text as
given.

Errors from the pipeline and the ranking engine propagate unchanged; the
service adds logging, not recovery.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from vector_search.embeddings.pipeline import EmbeddingPipeline
from vector_search.errors import InvalidArgument
from vector_search.search.similarity import SimilarityResult, cosine_similarity, search
from vector_search.store.document_store import Document, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


@dataclass
class EmbeddingResult:
    text: str
    embedding: np.ndarray = field(repr=False)

    @property
    def dimensions(self) -> int:
        return int(self.embedding.shape[0])

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "embedding": self.embedding.tolist(),
            "dimensions": self.dimensions,
        }


@dataclass
class BatchEmbeddingResult:
    results: List[EmbeddingResult]

    @property
    def total_count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_count": self.total_count,
        }


@dataclass
class SimilarityReport:
    text1: str
    text2: str
    similarity: float
    embedding1: Optional[np.ndarray] = field(default=None, repr=False)
    embedding2: Optional[np.ndarray] = field(default=None, repr=False)

    def to_dict(self) -> Dict:
        data = {"text1": self.text1, "text2": self.text2, "similarity": self.similarity}
        if self.embedding1 is not None:
            data["embedding1"] = self.embedding1.tolist()
            data["embedding2"] = self.embedding2.tolist()
        return data


@dataclass
class SearchReport:
    query_text: str
    results: List[SimilarityResult]
    total_documents: int
    query_embedding: Optional[np.ndarray] = field(default=None, repr=False)
    include_embeddings: bool = False

    @property
    def result_count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict:
        data = {
            "query_text": self.query_text,
            "results": [
                r.to_dict(include_embedding=self.include_embeddings) for r in self.results
            ],
            "total_documents": self.total_documents,
            "result_count": self.result_count,
        }
        if self.query_embedding is not None:
            data["query_embedding"] = self.query_embedding.tolist()
        return data


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgument(f"{name} cannot be null or empty")
    return value


class VectorSearchService:
    """
    Usage:
        service = VectorSearchService(pipeline, SQLiteDocumentStore(db_path))
        report = await service.search("How to cancel booking?", top_k=3)
        for r in report.results:
            print(r.score, r.document.question)
    """

    def __init__(self, pipeline: EmbeddingPipeline, store: DocumentStore):
        self.pipeline = pipeline
        self.store = store

    @property
    def query_prefix(self) -> str:
        return self.pipeline.config.query_prefix

    async def embed(self, text: str) -> EmbeddingResult:
        _require_text(text, "Text")
        logger.info("Generating embedding for text: %.80s", text)
        vector = await self.pipeline.embed(text)
        return EmbeddingResult(text=text, embedding=vector)

    async def embed_many(self, texts: Sequence[str]) -> BatchEmbeddingResult:
        if not texts:
            raise InvalidArgument("Texts cannot be null or empty")
        for i, text in enumerate(texts):
            _require_text(text, f"Text #{i}")
        vectors = await self.pipeline.embed_many(texts)
        return BatchEmbeddingResult(
            results=[EmbeddingResult(text=t, embedding=v) for t, v in zip(texts, vectors)]
        )

    async def similarity(
        self, text1: str, text2: str, include_embeddings: bool = False
    ) -> SimilarityReport:
        _require_text(text1, "text1")
        _require_text(text2, "text2")
        logger.info("Calculating similarity between two texts")
        emb1, emb2 = await self.pipeline.embed_many(
            [self.query_prefix + text1, self.query_prefix + text2]
        )
        return SimilarityReport(
            text1=text1,
            text2=text2,
            similarity=cosine_similarity(emb1, emb2),
            embedding1=emb1 if include_embeddings else None,
            embedding2=emb2 if include_embeddings else None,
        )

    def list_documents(self) -> List[Document]:
        return self.store.list_all()

    async def search(
        self,
        query_text: str,
        top_k: int = DEFAULT_TOP_K,
        include_embeddings: bool = False,
    ) -> SearchReport:
        _require_text(query_text, "Query text")
        if top_k < 1:
            raise InvalidArgument(f"top_k must be >= 1, got {top_k}")
        logger.info("Searching for similar documents to query: %.80s", query_text)

        query_vector = await self.pipeline.embed(self.query_prefix + query_text)
        documents = self.store.list_all()
        results = search(query_vector, documents, top_k=top_k)
        return SearchReport(
            query_text=query_text,
            results=results,
            total_documents=len(documents),
            query_embedding=query_vector if include_embeddings else None,
            include_embeddings=include_embeddings,
        )
