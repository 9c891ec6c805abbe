"""
SentencePiece Tokenizer Adapter
================================
Turns raw text into the token ids the e5 multilingual encoder expects.

The encoder was trained with the fairseq XLM-R vocabulary, which differs
from the native SentencePiece vocabulary by one slot: the embedding table
reserves index 0 for the ``<s>`` start marker.  So after encoding:

    - a leading ``<s>``        -> id 0
    - any other ``<s>``/``</s>`` -> native id, unchanged
    - every other piece        -> native id + 1

Sequences longer than ``max_length`` are cut to the first ``max_length``
ids.  No ``</s>`` is re-inserted after the cut; the encoder only reads the
first position for pooling.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import sentencepiece as spm

from vector_search.config import MAX_SEQUENCE_LENGTH
from vector_search.errors import InvalidArgument, TokenizerUnavailable

logger = logging.getLogger(__name__)

BOS_PIECE = "<s>"
EOS_PIECE = "</s>"


@dataclass(frozen=True)
class TokenSequence:
    """
    Ordered (piece, id) pairs produced from one input text.

    Attributes:
        tokens    : subword strings, including the ``<s>``/``</s>`` markers
        ids       : remapped ids, same order as ``tokens``
        truncated : True if the sequence was cut to the maximum length
    """
    tokens: Tuple[str, ...]
    ids: Tuple[int, ...]
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.ids)

    def pairs(self) -> List[Tuple[str, int]]:
        return list(zip(self.tokens, self.ids))


def remap_ids(tokens: List[str], native_ids: List[int]) -> List[int]:
    """Apply the XLM-R offset to native SentencePiece ids."""
    ids = []
    for position, (piece, native_id) in enumerate(zip(tokens, native_ids)):
        if piece in (BOS_PIECE, EOS_PIECE):
            ids.append(0 if piece == BOS_PIECE and position == 0 else native_id)
        else:
            ids.append(native_id + 1)
    return ids


class SentencePieceTokenizer:
    """
    Wraps a ``sentencepiece.SentencePieceProcessor``.

    Usage:
        tok = SentencePieceTokenizer.from_file("models/e5/sentencepiece.bpe.model")
        seq = tok.tokenize("Hello world")
        seq.ids  # (0, ..., 2) -- starts with 0, ends with the native </s> id
    """

    def __init__(self, processor, max_length: int = MAX_SEQUENCE_LENGTH):
        """
        Args:
            processor  : a loaded SentencePieceProcessor (or anything with
                         ``encode``, ``piece_to_id`` and ``id_to_piece``)
            max_length : truncation limit for the remapped id sequence
        """
        if max_length < 1:
            raise InvalidArgument(f"max_length must be >= 1, got {max_length}")
        self._sp = processor
        self.max_length = max_length
        self._bos_id = processor.piece_to_id(BOS_PIECE)
        self._eos_id = processor.piece_to_id(EOS_PIECE)

    @classmethod
    def from_file(
        cls,
        model_file: Union[str, Path],
        max_length: int = MAX_SEQUENCE_LENGTH,
    ) -> "SentencePieceTokenizer":
        """
        Load the vocabulary model.  Any failure here is a startup-time
        fatal condition and raises ``TokenizerUnavailable``.
        """
        path = Path(model_file)
        if not path.is_file():
            logger.error("Tokenizer file not found at %s", path)
            raise TokenizerUnavailable(f"Tokenizer file not found at {path}")

        logger.info("Creating tokenizer from file at %s", path)
        processor = spm.SentencePieceProcessor()
        try:
            processor.load(str(path))
        except (OSError, RuntimeError) as exc:
            logger.error("Failed to load tokenizer from %s: %s", path, exc)
            raise TokenizerUnavailable(
                f"Failed to load tokenizer from {path}: {exc}"
            ) from exc
        logger.info("Tokenizer loaded: vocab_size=%d", processor.get_piece_size())
        return cls(processor, max_length=max_length)

    @property
    def vocab_size(self) -> int:
        return self._sp.get_piece_size()

    def _encode_native(self, text: str) -> Tuple[List[str], List[int]]:
        body = list(self._sp.encode(text, out_type=int))
        native_ids = [self._bos_id] + body + [self._eos_id]
        pieces = [self._sp.id_to_piece(i) for i in native_ids]
        return pieces, native_ids

    def tokenize(self, text: Optional[str]) -> TokenSequence:
        """
        Encode ``text`` into a remapped, length-bounded TokenSequence.

        Raises:
            InvalidArgument : if text is None or empty
        """
        if not text:
            raise InvalidArgument("Text cannot be null or empty")

        pieces, native_ids = self._encode_native(text)
        ids = remap_ids(pieces, native_ids)

        truncated = len(ids) > self.max_length
        if truncated:
            logger.debug(
                "Truncated sequence from %d to %d tokens", len(ids), self.max_length
            )
            ids = ids[: self.max_length]
            pieces = pieces[: self.max_length]

        return TokenSequence(tokens=tuple(pieces), ids=tuple(ids), truncated=truncated)

    def tokenize_to_strings(self, text: str) -> List[str]:
        """Subword strings only, without ids or truncation."""
        if not text:
            raise InvalidArgument("Text cannot be null or empty")
        return self._encode_native(text)[0]

    def normalize(self, text: str) -> str:
        """
        Apply the model's own text normaliser (NFKC + whitespace rules baked
        into the .model file).  Returns the text unchanged if the processor
        exposes no normaliser.
        """
        normalize = getattr(self._sp, "normalize", None)
        return normalize(text) if normalize is not None else text
