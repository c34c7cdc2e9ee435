"""Errors raised by the keyword grouping pipeline.

``EmbeddingFailure`` is transient from the caller's point of view (retry the
whole request). ``DimensionMismatch`` and ``PreconditionViolation`` point to
a programming defect or a corrupted embedding set and should not be retried.
"""

__all__ = [
    "KeywordGroupingError",
    "EmbeddingFailure",
    "DimensionMismatch",
    "PreconditionViolation",
]


class KeywordGroupingError(Exception):
    """Base class for keyword grouping errors."""


class EmbeddingFailure(KeywordGroupingError, RuntimeError):
    """The embedding model rejected or failed a batch request."""


class DimensionMismatch(KeywordGroupingError, ValueError):
    """Two embedding vectors being compared have different lengths."""


class PreconditionViolation(KeywordGroupingError, ValueError):
    """Input handed to the clusterer or similarity stage is malformed."""
