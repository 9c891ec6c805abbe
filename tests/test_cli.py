import json

import pytest

import cli
from conftest import make_document
from vector_search.store.document_store import SQLiteDocumentStore


@pytest.fixture
def settings_file(tmp_path):
    db = tmp_path / "embeddings.db"
    path = tmp_path / "settings.yaml"
    path.write_text(
        "embedding:\n"
        f"  model_path: {tmp_path / 'model.onnx'}\n"
        f"  tokenizer_path: {tmp_path / 'sentencepiece.bpe.model'}\n"
        "store:\n"
        f"  database_path: {db}\n"
        f"  dataset_path: {tmp_path / 'dataset.csv'}\n",
        encoding="utf-8",
    )
    return path, db


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 0
    assert "prepare" in capsys.readouterr().out


def test_parser_defaults():
    args = cli.build_parser().parse_args(["search", "how to cancel"])
    assert args.top_k == 5
    assert not args.include_embeddings


def test_documents_json(settings_file, capsys):
    path, db = settings_file
    store = SQLiteDocumentStore(db)
    store.initialize()
    store.add(make_document(1, [1.0, 0.0], question="How do I cancel?"))

    cli.main(["--settings", str(path), "documents", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["question"] == "How do I cancel?"
    assert "embedding" not in data[0]


def test_missing_database_exits_1(settings_file):
    path, _ = settings_file
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--settings", str(path), "documents"])
    assert excinfo.value.code == 1


def test_missing_settings_file_exits_1(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--settings", str(tmp_path / "typo.yaml"), "documents"])
    assert excinfo.value.code == 1


def test_missing_model_exits_1(settings_file):
    path, _ = settings_file
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--settings", str(path), "embed", "Hello"])
    assert excinfo.value.code == 1
