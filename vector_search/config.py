"""
Settings Loader
================
Reads ``configs/settings.yaml`` and turns its sections into small typed
configuration objects for the embedding pipeline and the document store.

The settings file has::

    embedding:
      model_path: "models/e5/model_O4.onnx"
      tokenizer_path: "models/e5/sentencepiece.bpe.model"
      max_length: 512
      pooling: "cls"
      device: "CPU"
      intra_op_threads: 20
      inter_op_threads: 40
    store:
      database_path: "data/embeddings.db"
      dataset_path: "data/dataset.csv"

Relative paths are resolved against the project root so the CLI works from
any working directory.  ``VECTOR_SEARCH_SETTINGS`` overrides the file
location.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from vector_search.errors import InvalidArgument

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SETTINGS_PATH = PROJECT_ROOT / "configs" / "settings.yaml"
SETTINGS_ENV_VAR = "VECTOR_SEARCH_SETTINGS"

MAX_SEQUENCE_LENGTH = 512
POOLING_STRATEGIES = {"cls", "mean"}


def load_settings(path: Optional[Union[str, Path]] = None) -> dict:
    """
    Load settings from YAML.

    Lookup order: explicit ``path``, then ``$VECTOR_SEARCH_SETTINGS``, then
    ``configs/settings.yaml``.  A missing default file is not fatal -- every
    field has a default -- so an empty dict is returned with a warning.  A
    file named explicitly (argument or environment) must exist.

    Raises:
        FileNotFoundError : an explicitly named settings file is missing
        InvalidArgument   : the file does not hold a mapping
    """
    explicit = path or os.environ.get(SETTINGS_ENV_VAR)
    settings_path = Path(explicit or SETTINGS_PATH)
    if not settings_path.exists():
        if explicit:
            raise FileNotFoundError(f"Settings file not found: {settings_path}")
        logger.warning("Settings file not found: %s", settings_path)
        return {}
    with open(settings_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidArgument(
            f"Settings file {settings_path} must contain a mapping, "
            f"got {type(data).__name__}"
        )
    logger.debug("Loaded settings from %s", settings_path)
    return data


def _resolve(path: Union[str, Path]) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else PROJECT_ROOT / p


@dataclass(frozen=True)
class EmbeddingConfig:
    """
    Everything the embedding pipeline needs to know about one model variant.

    Attributes:
        model_path       : encoder graph (.onnx or OpenVINO .xml)
        tokenizer_path   : SentencePiece .model file
        max_length       : truncation limit for token ids
        pooling          : "cls" (first token) or "mean" (masked average)
        output_name      : model output holding token-level hidden states
        device           : OpenVINO device string ("CPU", "GPU", "AUTO")
        intra_op_threads : threads used inside a single operator
        inter_op_threads : parallel execution streams across requests
        max_workers      : size of the worker pool that runs inference
        query_prefix     : prepended to search queries (E5 convention)
        passage_prefix   : prepended to stored documents (E5 convention)
    """
    model_path: Path = PROJECT_ROOT / "models" / "e5" / "model_O4.onnx"
    tokenizer_path: Path = PROJECT_ROOT / "models" / "e5" / "sentencepiece.bpe.model"
    max_length: int = MAX_SEQUENCE_LENGTH
    pooling: str = "cls"
    output_name: str = "last_hidden_state"
    device: str = "CPU"
    intra_op_threads: int = 20
    inter_op_threads: int = 40
    max_workers: int = 4
    query_prefix: str = "query: "
    passage_prefix: str = "passage: "

    def __post_init__(self):
        if self.pooling not in POOLING_STRATEGIES:
            raise InvalidArgument(
                f"Unknown pooling strategy '{self.pooling}'. "
                f"Choose from {sorted(POOLING_STRATEGIES)}"
            )
        for name in ("max_length", "intra_op_threads", "inter_op_threads", "max_workers"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_settings(cls, settings: dict) -> "EmbeddingConfig":
        section = dict(settings.get("embedding") or {})
        for key in ("model_path", "tokenizer_path"):
            if key in section:
                section[key] = _resolve(section[key])
        unknown = set(section) - set(cls.__dataclass_fields__)
        if unknown:
            logger.warning("Ignoring unknown embedding settings: %s", sorted(unknown))
            for key in unknown:
                section.pop(key)
        return cls(**section)


@dataclass(frozen=True)
class StoreConfig:
    """Locations of the document database and the source dataset."""
    database_path: Path = PROJECT_ROOT / "data" / "embeddings.db"
    dataset_path: Path = PROJECT_ROOT / "data" / "dataset.csv"

    @classmethod
    def from_settings(cls, settings: dict) -> "StoreConfig":
        section = settings.get("store") or {}
        defaults = cls()
        return cls(
            database_path=_resolve(section.get("database_path", defaults.database_path)),
            dataset_path=_resolve(section.get("dataset_path", defaults.dataset_path)),
        )
