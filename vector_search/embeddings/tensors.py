"""
Tensor Builder
===============
Assembles the three parallel int64 tensors a BERT-style encoder expects
for a single sequence (batch size fixed at 1):

    input_ids      : the remapped token ids
    attention_mask : all ones (no padding within a single sequence)
    token_type_ids : all zeros (single segment)

All three always have shape ``(1, len(ids))``.
"""

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np

INPUT_NAMES = ("input_ids", "attention_mask", "token_type_ids")


@dataclass(frozen=True)
class ModelInputTensors:
    input_ids: np.ndarray
    attention_mask: np.ndarray
    token_type_ids: np.ndarray

    @property
    def shape(self) -> tuple:
        return self.input_ids.shape

    def as_feed(self) -> Dict[str, np.ndarray]:
        """Name -> tensor mapping in the form the runtime consumes."""
        return {
            "input_ids": self.input_ids,
            "attention_mask": self.attention_mask,
            "token_type_ids": self.token_type_ids,
        }


def build_model_inputs(ids: Sequence[int]) -> ModelInputTensors:
    input_ids = np.asarray(ids, dtype=np.int64).reshape(1, -1)
    return ModelInputTensors(
        input_ids=input_ids,
        attention_mask=np.ones_like(input_ids),
        token_type_ids=np.zeros_like(input_ids),
    )
