"""
Vector Search -- root package.

This package contains the multilingual embedding and ranking pipeline:
    embeddings -> tokenize, build tensors, pool and normalise vectors
    openvino   -> inference runtime and device selection
    search     -> cosine similarity and top-k ranking
    index      -> in-memory exact (brute-force) vector snapshot
    store      -> SQLite document collection with precomputed vectors
    ingestion  -> CSV question/answer dataset preparation
    service    -> embed / similarity / search facade for callers
"""

__version__ = "0.1.0"
