"""
Error taxonomy for the semantic analysis pipeline.

Input errors abort the similarity stage. Embedding service errors are retried
and then isolated to the failing item. Output write errors always propagate.
"""


class SemanticAnalysisError(Exception):
    """Base class for all pipeline errors."""


class InputError(SemanticAnalysisError):
    """Malformed or missing upstream data."""


class PathError(InputError):
    """A required path is empty or does not exist."""


class EmptyStoreError(InputError):
    """A vector file produced no usable records."""


class DimensionMismatchError(InputError):
    """Vectors that must share a dimensionality do not."""


class ExtractionError(InputError):
    """A document could not be turned into text."""


class PlotDataError(InputError):
    """A similarity file holds no plottable rows."""


class EmbeddingServiceError(SemanticAnalysisError):
    """The external embedding service failed a request."""


class EmbeddingExhaustedError(EmbeddingServiceError):
    """All retry attempts for a single text failed."""

    def __init__(self, text: str, attempts: int, last_error: Exception = None):
        self.text = text
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to generate embedding after {attempts} attempts: {last_error}")


class OutputWriteError(SemanticAnalysisError):
    """Writing or replacing an output file failed."""


class OperationCancelledError(SemanticAnalysisError):
    """A run observed its cancellation signal and stopped."""
