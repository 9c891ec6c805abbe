import numpy as np
import pytest

from conftest import make_document
from vector_search.errors import InvalidArgument
from vector_search.index.flat_index import FlatIndex
from vector_search.search.similarity import cosine_similarity, search


def unit(vec):
    vec = np.asarray(vec, dtype=np.float32)
    return vec / np.linalg.norm(vec)


@pytest.fixture
def five_documents():
    rng = np.random.default_rng(7)
    return [make_document(i, unit(rng.standard_normal(16))) for i in range(1, 6)]


# ---------------------------------------------------------------------------
# cosine_similarity
# ---------------------------------------------------------------------------

def test_self_similarity_is_one():
    v = np.random.default_rng(0).standard_normal(384)
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_symmetric_and_bounded():
    rng = np.random.default_rng(1)
    for _ in range(20):
        a, b = rng.standard_normal(32), rng.standard_normal(32)
        s = cosine_similarity(a, b)
        assert s == pytest.approx(cosine_similarity(b, a))
        assert -1.0 <= s <= 1.0


def test_opposite_vectors():
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_zero_vector_scores_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


def test_dimension_mismatch():
    with pytest.raises(InvalidArgument, match="same dimensions"):
        cosine_similarity(np.ones(384), np.ones(512))


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------

def test_top_3_of_5_descending(five_documents):
    query = five_documents[2].embedding
    results = search(query, five_documents, top_k=3)
    assert len(results) == 3
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].document.id == 3
    assert results[0].score == pytest.approx(1.0)


def test_top_k_larger_than_collection_returns_all(five_documents):
    results = search(five_documents[0].embedding, five_documents, top_k=10)
    assert len(results) == 5


def test_repeated_search_is_identical(five_documents):
    query = unit(np.arange(16, dtype=np.float32) + 1)
    first = [(r.document.id, r.score) for r in search(query, five_documents, top_k=5)]
    second = [(r.document.id, r.score) for r in search(query, five_documents, top_k=5)]
    assert first == second


def test_ties_keep_input_order():
    vec = unit([1.0, 1.0])
    docs = [make_document(i, vec) for i in (9, 4, 7)]
    docs.append(make_document(1, unit([1.0, 0.0])))
    results = search(vec, docs, top_k=4)
    assert [r.document.id for r in results] == [9, 4, 7, 1]


def test_empty_collection():
    assert search(np.ones(4), [], top_k=3) == []


def test_document_dimension_mismatch(five_documents):
    with pytest.raises(InvalidArgument):
        search(np.ones(8), five_documents, top_k=3)


@pytest.mark.parametrize("top_k", [0, -1])
def test_non_positive_top_k(five_documents, top_k):
    with pytest.raises(InvalidArgument):
        search(five_documents[0].embedding, five_documents, top_k=top_k)


def test_result_to_dict(five_documents):
    result = search(five_documents[0].embedding, five_documents, top_k=1)[0]
    data = result.to_dict()
    assert data["document"]["id"] == 1
    assert "embedding" not in data["document"]
    assert data["similarity"] == pytest.approx(1.0)
    assert len(result.to_dict(include_embedding=True)["document"]["embedding"]) == 16


# ---------------------------------------------------------------------------
# FlatIndex
# ---------------------------------------------------------------------------

def test_index_infers_dimension(five_documents):
    idx = FlatIndex().build(five_documents)
    assert idx.size == 5
    assert idx.dimension == 16


def test_index_add_appends_after_existing(five_documents):
    idx = FlatIndex().build(five_documents[:2])
    idx.add(five_documents[2:])
    assert idx.size == 5
    results = idx.search(five_documents[4].embedding, top_k=1)
    assert results[0].document.id == 5


def test_index_rejects_mixed_dimensions(five_documents):
    idx = FlatIndex().build(five_documents)
    with pytest.raises(InvalidArgument):
        idx.add([make_document(99, np.ones(8))])


def test_index_query_dimension_mismatch(five_documents):
    idx = FlatIndex().build(five_documents)
    with pytest.raises(InvalidArgument, match="does not match"):
        idx.search(np.ones(4), top_k=1)


def test_index_rejects_matrix_query(five_documents):
    idx = FlatIndex().build(five_documents)
    with pytest.raises(InvalidArgument, match="1-D"):
        idx.search(np.ones((2, 16)), top_k=1)


def test_index_snapshot_is_copied(five_documents):
    idx = FlatIndex().build(five_documents)
    query = unit(np.ones(16))
    before = [r.score for r in idx.search(query, top_k=5)]
    five_documents[0].embedding[:] = 0.0
    after = [r.score for r in idx.search(query, top_k=5)]
    assert before == after
