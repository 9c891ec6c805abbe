"""
Error taxonomy shared by every layer of the pipeline.

    InvalidArgument       -- malformed or empty caller input, never retried
    ModelArtifactMissing  -- model / tokenizer file absent at startup
    TokenizerUnavailable  -- tokenizer artifact present but unloadable
    InternalError         -- the runtime broke its contract (wrong output
                             rank or count), usually a model/version mismatch

Lower layers raise these and never swallow them; recovery is left to the
calling service.
"""


class VectorSearchError(Exception):
    """Base class for all errors raised by this package."""


class InvalidArgument(VectorSearchError, ValueError):
    """Caller supplied malformed or empty input."""


class StartupError(VectorSearchError):
    """Fatal condition while loading artifacts; the process must not serve."""


class ModelArtifactMissing(StartupError, FileNotFoundError):
    """A configured model or tokenizer file does not exist."""


class TokenizerUnavailable(StartupError):
    """The tokenizer vocabulary/model artifact could not be loaded."""


class InternalError(VectorSearchError, RuntimeError):
    """The inference runtime returned something that violates its contract."""
