"""
Pooling & Normalisation
========================
Reduces the encoder's token-level output to one vector and rescales it to
unit length.

The encoder returns ``last_hidden_state`` with shape
``(batch, seq_len, hidden_dim)``.  Two pooling strategies are supported:

    cls  -- take the vector at sequence position 0 (the ``<s>`` marker).
            This is what the e5 multilingual ONNX export is used with.
    mean -- average the token vectors over real tokens, using the
            attention mask to exclude padding.  Kept for mean-pooled
            sentence-transformers exports.

After pooling the vector is L2-normalised so that dot product equals
cosine similarity.  Vectors with norm <= 1e-12 are returned unchanged
rather than divided by (almost) zero.
"""

import logging
from typing import Mapping, Optional

import numpy as np

from vector_search.errors import InternalError, InvalidArgument

logger = logging.getLogger(__name__)

NORM_EPSILON = 1e-12


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Return ``vector / ||vector||`` as float32, or a copy if the norm is ~0."""
    vec = np.asarray(vector, dtype=np.float64)
    magnitude = float(np.sqrt(np.sum(vec * vec)))
    if magnitude > NORM_EPSILON:
        vec = vec / magnitude
    return vec.astype(np.float32)


def _hidden_state(outputs: Mapping[str, np.ndarray], output_name: str) -> np.ndarray:
    if output_name not in outputs:
        raise InternalError(
            f"Model output '{output_name}' missing; got {sorted(outputs)}"
        )
    hidden = np.asarray(outputs[output_name])
    if hidden.ndim != 3:
        raise InternalError(
            f"Unexpected shape for {output_name}: "
            f"{', '.join(str(d) for d in hidden.shape)}"
        )
    if hidden.shape[0] < 1 or hidden.shape[1] < 1:
        raise InternalError(f"Empty {output_name} tensor of shape {hidden.shape}")
    return hidden


def cls_pool(hidden: np.ndarray) -> np.ndarray:
    return hidden[0, 0, :]


def mean_pool(hidden: np.ndarray, attention_mask: Optional[np.ndarray] = None) -> np.ndarray:
    if attention_mask is None:
        return hidden[0].mean(axis=0)
    # (batch, seq_len) -> (batch, seq_len, 1) for broadcasting
    mask = np.asarray(attention_mask)[:, :, np.newaxis].astype(np.float32)
    summed = np.sum(hidden * mask, axis=1)[0]
    count = max(float(np.sum(mask[0])), 1e-9)
    return summed / count


def pool_and_normalize(
    outputs: Mapping[str, np.ndarray],
    output_name: str = "last_hidden_state",
    strategy: str = "cls",
    attention_mask: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Extract the pooled representation from ``outputs`` and L2-normalise it.

    Args:
        outputs        : inference outputs keyed by name
        output_name    : which output holds the token-level hidden states
        strategy       : "cls" or "mean"
        attention_mask : (1, seq_len) mask, only used by "mean"

    Returns:
        1-D float32 array of length hidden_dim, unit norm or all zeros.

    Raises:
        InternalError   : output missing or not rank 3
        InvalidArgument : unknown strategy
    """
    hidden = _hidden_state(outputs, output_name)
    if strategy == "cls":
        pooled = cls_pool(hidden)
    elif strategy == "mean":
        pooled = mean_pool(hidden, attention_mask)
    else:
        raise InvalidArgument(f"Unknown pooling strategy '{strategy}'")
    return l2_normalize(pooled)
