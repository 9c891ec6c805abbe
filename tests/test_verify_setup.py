import importlib.util
from pathlib import Path

import pytest

from vector_search.config import EmbeddingConfig, StoreConfig

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "verify_setup.py"


@pytest.fixture(scope="module")
def verify_setup():
    spec = importlib.util.spec_from_file_location("verify_setup", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_required_package_present(verify_setup):
    assert verify_setup.check_package("numpy", "NumPy", True)


def test_optional_package_missing_does_not_fail(verify_setup):
    assert verify_setup.check_package("not_a_real_module_xyz", "Nothing", False)
    assert not verify_setup.check_package("not_a_real_module_xyz", "Nothing", True)


def test_artifacts(verify_setup, tmp_path):
    model = tmp_path / "model.onnx"
    vocab = tmp_path / "sentencepiece.bpe.model"
    config = EmbeddingConfig(model_path=model, tokenizer_path=vocab)
    assert not verify_setup.check_artifacts(config)
    model.write_bytes(b"onnx")
    vocab.write_bytes(b"spm")
    assert verify_setup.check_artifacts(config)


def test_database_is_advisory(verify_setup, tmp_path):
    assert not verify_setup.check_database(StoreConfig(database_path=tmp_path / "x.db"))
