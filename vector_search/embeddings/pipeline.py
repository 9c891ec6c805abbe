"""
Embedding Pipeline
===================
Turns one text into one normalised embedding vector:

    text -> tokenize/truncate -> build tensors -> run inference
         -> pool -> L2-normalise

The pipeline is a single class parameterised by ``EmbeddingConfig``
(model path, tokenizer path, max length, pooling strategy) plus an
``InferenceRuntime``; model variants differ only in configuration.

Batches (``embed_many``) schedule one independent ``embed`` per text on
the shared runtime and gather them.  The batch is all-or-nothing: the
first failing text aborts it and its exception propagates unchanged.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from vector_search.config import EmbeddingConfig
from vector_search.embeddings.pooling import pool_and_normalize
from vector_search.embeddings.tensors import build_model_inputs
from vector_search.embeddings.tokenizer import SentencePieceTokenizer
from vector_search.errors import InvalidArgument, ModelArtifactMissing
from vector_search.openvino.runtime import InferenceRuntime, OVRuntime

logger = logging.getLogger(__name__)


class EmbeddingPipeline:
    """
    Usage:
        pipeline = EmbeddingPipeline.from_config(EmbeddingConfig())
        vector = await pipeline.embed("query: How do I cancel my booking?")
        # vector.shape == (384,), dtype float32, unit norm
        pipeline.close()
    """

    def __init__(
        self,
        tokenizer: SentencePieceTokenizer,
        runtime: InferenceRuntime,
        config: Optional[EmbeddingConfig] = None,
    ):
        self.tokenizer = tokenizer
        self.runtime = runtime
        self.config = config or EmbeddingConfig()
        self._dim: Optional[int] = None

    @classmethod
    def from_config(cls, config: EmbeddingConfig, device_manager=None) -> "EmbeddingPipeline":
        """
        Load the tokenizer and compile the model described by ``config``.

        Raises:
            ModelArtifactMissing : either artifact file is absent
            TokenizerUnavailable : the tokenizer file cannot be parsed
        """
        for label, path in (("Model", config.model_path), ("Tokenizer", config.tokenizer_path)):
            if not Path(path).is_file():
                logger.error("%s file not found at %s", label, path)
                raise ModelArtifactMissing(f"{label} file not found at {path}")

        tokenizer = SentencePieceTokenizer.from_file(
            config.tokenizer_path, max_length=config.max_length
        )

        if device_manager is None:
            from vector_search.openvino.device_manager import DeviceManager
            device_manager = DeviceManager()
        device = device_manager.select(config.device)

        runtime = OVRuntime.load(
            config.model_path,
            device=device,
            intra_op_threads=config.intra_op_threads,
            inter_op_threads=config.inter_op_threads,
            max_workers=config.max_workers,
            core=device_manager.core,
        )
        logger.info("Embedding pipeline initialised (pooling=%s)", config.pooling)
        return cls(tokenizer, runtime, config)

    @property
    def dimension(self) -> Optional[int]:
        """Embedding size, known after the first successful ``embed``."""
        return self._dim

    async def embed(self, text: str) -> np.ndarray:
        """
        Embed one text.

        Raises:
            InvalidArgument : empty text
            InternalError   : the model output violated the tensor contract
        """
        if not text:
            raise InvalidArgument("Text cannot be null or empty")

        tokens = self.tokenizer.tokenize(text)
        tensors = build_model_inputs(tokens.ids)
        try:
            outputs = await self.runtime.run(tensors.as_feed(), [self.config.output_name])
            vector = pool_and_normalize(
                outputs,
                output_name=self.config.output_name,
                strategy=self.config.pooling,
                attention_mask=tensors.attention_mask,
            )
        except Exception:
            logger.error("Failed to generate embedding for text: %.80s", text)
            raise

        self._dim = int(vector.shape[0])
        return vector

    async def embed_many(self, texts: Sequence[str]) -> List[np.ndarray]:
        """
        Embed every text concurrently.  Order of the result matches
        ``texts``.  One failure aborts the whole batch.
        """
        if not texts:
            return []
        logger.info("Generating embeddings for %d texts", len(texts))
        vectors = await asyncio.gather(*(self.embed(text) for text in texts))
        return list(vectors)

    def close(self) -> None:
        self.runtime.close()
