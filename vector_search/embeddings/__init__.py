"""
Embeddings subpackage -- text-to-vector encoding.

    SentencePieceTokenizer -- text -> remapped, truncated token ids
    build_model_inputs     -- ids -> input_ids / attention_mask / token_type_ids
    pool_and_normalize     -- hidden states -> unit-length vector
    EmbeddingPipeline      -- the four steps above around an InferenceRuntime
"""

from vector_search.embeddings.pipeline import EmbeddingPipeline
from vector_search.embeddings.pooling import l2_normalize, pool_and_normalize
from vector_search.embeddings.tensors import ModelInputTensors, build_model_inputs
from vector_search.embeddings.tokenizer import SentencePieceTokenizer, TokenSequence
