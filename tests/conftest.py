"""Shared fakes: no model files or OpenVINO plugins are needed to run the suite."""
import os
import sys
import zlib

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vector_search.config import EmbeddingConfig
from vector_search.embeddings.pipeline import EmbeddingPipeline
from vector_search.embeddings.tensors import INPUT_NAMES
from vector_search.embeddings.tokenizer import SentencePieceTokenizer
from vector_search.errors import InternalError
from vector_search.openvino.runtime import InferenceRuntime
from vector_search.store.document_store import Document

HIDDEN_DIM = 8


class FakeProcessor:
    """Whitespace 'SentencePiece' with the XLM-R special ids (<unk>=0, <s>=1, </s>=2)."""

    def __init__(self):
        self._pieces = ["<unk>", "<s>", "</s>"]
        self._ids = {p: i for i, p in enumerate(self._pieces)}

    def _intern(self, piece):
        if piece not in self._ids:
            self._ids[piece] = len(self._pieces)
            self._pieces.append(piece)
        return self._ids[piece]

    def piece_to_id(self, piece):
        return self._ids.get(piece, 0)

    def id_to_piece(self, i):
        return self._pieces[i]

    def get_piece_size(self):
        return len(self._pieces)

    def encode(self, text, out_type=int):
        return [self._intern("▁" + word) for word in text.split()]


class FakePort:
    def __init__(self, *names):
        self._names = set(names)

    def get_any_name(self):
        return sorted(self._names)[0]

    def get_names(self):
        return set(self._names)


class FakeInferRequest:
    def __init__(self, compiled):
        self._compiled = compiled

    def infer(self, feed):
        self._compiled.calls.append(feed)
        return self._compiled.respond(feed)


class FakeCompiledModel:
    """
    Mimics ``openvino.CompiledModel``: ``respond(feed)`` returns a dict keyed
    by output port, like ``InferRequest.infer`` does.
    """

    def __init__(self, outputs=None, respond=None, inputs=None):
        self.inputs = inputs or [FakePort(name) for name in INPUT_NAMES]
        self.outputs = outputs or [FakePort("last_hidden_state", "output_0")]
        self._respond = respond
        self.calls = []

    def create_infer_request(self):
        return FakeInferRequest(self)

    def respond(self, feed):
        if self._respond is not None:
            return self._respond(feed)
        seq_len = feed["input_ids"].shape[1]
        return {self.outputs[0]: np.ones((1, seq_len, HIDDEN_DIM), dtype=np.float32)}


class FakeCore:
    def __init__(self, devices=("CPU",), compiled=None, properties=None):
        self.available_devices = list(devices)
        self.compiled = compiled or FakeCompiledModel()
        self.properties = properties or {}
        self.read_calls = []
        self.compile_calls = []

    def read_model(self, model):
        self.read_calls.append(model)
        return "model-graph"

    def compile_model(self, model, device_name, config):
        self.compile_calls.append((model, device_name, config))
        return self.compiled

    def get_property(self, device, key):
        try:
            return self.properties[device][key]
        except KeyError:
            raise RuntimeError(f"{device} does not support {key}")


def hidden_state_for(ids):
    """Deterministic (1, seq_len, dim) output derived from the token ids."""
    ids = np.asarray(ids).ravel()
    seed = zlib.crc32(ids.astype(np.int64).tobytes())
    rng = np.random.default_rng(seed)
    return rng.standard_normal((1, ids.shape[0], HIDDEN_DIM)).astype(np.float32)


class FakeRuntime(InferenceRuntime):
    """In-process runtime whose output depends only on input_ids."""

    def __init__(self, fail_on_token=None):
        self.fail_on_token = fail_on_token
        self.calls = 0
        self.closed = False

    @property
    def input_names(self):
        return list(INPUT_NAMES)

    @property
    def output_names(self):
        return ["last_hidden_state"]

    async def run(self, inputs, wanted_outputs=None):
        self.validate_inputs(inputs)
        names = self.resolve_outputs(wanted_outputs)
        self.calls += 1
        ids = inputs["input_ids"]
        if self.fail_on_token is not None and self.fail_on_token in ids:
            raise InternalError("Unexpected shape for last_hidden_state: 1, 3")
        return {name: hidden_state_for(ids) for name in names}

    def close(self):
        self.closed = True


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def tokenizer(processor):
    return SentencePieceTokenizer(processor)


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def pipeline(tokenizer, runtime):
    return EmbeddingPipeline(tokenizer, runtime, EmbeddingConfig())


def make_document(doc_id, vector, question=None):
    question = question or f"question {doc_id}"
    answer = f"answer {doc_id}"
    return Document(
        id=doc_id,
        question=question,
        answer=answer,
        combined_text=f"{question} : {answer}",
        embedding=np.asarray(vector, dtype=np.float32),
    )
