import asyncio
import sqlite3

import numpy as np
import pytest

from conftest import FakeRuntime, make_document
from vector_search.config import EmbeddingConfig
from vector_search.embeddings.pipeline import EmbeddingPipeline
from vector_search.errors import InternalError
from vector_search.store.document_store import InMemoryDocumentStore, SQLiteDocumentStore
from vector_search.ingestion.loader import QARecord, load_qa_csv, prepare_documents


@pytest.fixture
def store(tmp_path):
    s = SQLiteDocumentStore(tmp_path / "db" / "embeddings.db")
    s.initialize()
    return s


def test_sqlite_round_trip(store):
    store.add(make_document(2, [0.6, 0.8, 0.0], question="How do I cancel?"))
    store.add(make_document(1, [1.0, 0.0, 0.0]))

    docs = store.list_all()
    assert [d.id for d in docs] == [1, 2]
    assert docs[1].question == "How do I cancel?"
    assert docs[1].combined_text == "How do I cancel? : answer 2"
    assert docs[1].embedding_dimensions == 3
    assert docs[1].embedding.dtype == np.float32
    assert np.allclose(docs[1].embedding, [0.6, 0.8, 0.0])
    assert docs[0].created_at is not None
    assert store.count() == 2


def test_reset_recreates_database(store):
    store.add(make_document(1, [1.0, 0.0]))
    store.initialize(reset=True)
    assert store.count() == 0


def test_missing_database_hints_prepare(tmp_path):
    store = SQLiteDocumentStore(tmp_path / "absent.db")
    with pytest.raises(FileNotFoundError, match="prepare"):
        store.list_all()


def test_in_memory_store_is_a_snapshot():
    docs = [make_document(1, [1.0, 0.0])]
    store = InMemoryDocumentStore(docs)
    docs.append(make_document(2, [0.0, 1.0]))
    assert [d.id for d in store.list_all()] == [1]


def test_document_to_dict_hides_embedding_by_default():
    doc = make_document(3, [1.0, 0.0])
    assert "embedding" not in doc.to_dict()
    assert doc.to_dict(include_embedding=True)["embedding"] == [1.0, 0.0]


# ---------------------------------------------------------------------------
# Dataset loading & preparation
# ---------------------------------------------------------------------------

def write_csv(path, body):
    path.write_text("id,question,answer\n" + body, encoding="utf-8")
    return path


def test_load_qa_csv_parses_quoted_fields(tmp_path):
    csv_path = write_csv(
        tmp_path / "dataset.csv",
        '1,"How do I cancel, exactly?","Open \'My trips\'."\n'
        "2,Où est la gare?,Tout droit.\n",
    )
    records = load_qa_csv(csv_path)
    assert records == [
        QARecord(1, "How do I cancel, exactly?", "Open 'My trips'."),
        QARecord(2, "Où est la gare?", "Tout droit."),
    ]
    assert records[1].combined_text == "Où est la gare? : Tout droit."


def test_load_qa_csv_skips_bad_rows(tmp_path):
    csv_path = write_csv(tmp_path / "dataset.csv", "1,q\nx,q,a\n3,q3,a3\n")
    assert [r.id for r in load_qa_csv(csv_path)] == [3]


def test_load_qa_csv_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_qa_csv(tmp_path / "nope.csv")


def test_prepare_documents_embeds_with_passage_prefix(pipeline, store):
    records = [QARecord(1, "Hello", "World"), QARecord(2, "Bonjour", "Monde")]
    inserted = asyncio.run(prepare_documents(pipeline, store, records))
    assert inserted == 2

    docs = store.list_all()
    assert [d.combined_text for d in docs] == ["Hello : World", "Bonjour : Monde"]
    expected = asyncio.run(pipeline.embed("passage: Hello : World"))
    assert np.allclose(docs[0].embedding, expected)


def test_add_many_is_all_or_nothing(store):
    docs = [make_document(1, [1.0, 0.0]), make_document(2, [0.0, 1.0]), make_document(1, [1.0, 1.0])]
    with pytest.raises(sqlite3.IntegrityError):
        store.add_many(docs)
    assert store.count() == 0


def test_failed_prepare_leaves_no_rows(pipeline, store):
    records = [QARecord(1, "Hello", "World"), QARecord(1, "Bonjour", "Monde")]
    with pytest.raises(sqlite3.IntegrityError):
        asyncio.run(prepare_documents(pipeline, store, records))
    assert store.count() == 0


def test_embedding_failure_during_prepare_writes_nothing(tokenizer, store):
    runtime = FakeRuntime()
    pipe = EmbeddingPipeline(tokenizer, runtime, EmbeddingConfig())
    runtime.fail_on_token = tokenizer.tokenize("broken").ids[1]
    records = [QARecord(1, "fine", "ok"), QARecord(2, "broken", "row")]
    with pytest.raises(InternalError):
        asyncio.run(prepare_documents(pipe, store, records))
    assert store.count() == 0
