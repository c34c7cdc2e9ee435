"""
Keyword Grouping - Semantic keyword clustering for content planning.

This package groups search keywords that one article can cover together:

- Embeddings: batched, rate-limited keyword embedding (OpenAI via LangChain
  or sentence-transformers)
- Clustering: pairwise cosine similarity and greedy connectivity-seeded
  grouping with primary keyword selection
- Storage: SQLite persistence of groups per scope (full replace)
"""

__version__ = "1.0.0"

from keyword_grouping.DEFAULT_CONSTS import (  # noqa: E402
    DEFAULT_GROUP_KEYS,
    DEFAULT_SIMILARITY_THRESHOLD,
    GroupKeys,
)
from keyword_grouping.exceptions import (  # noqa: E402
    DimensionMismatch,
    EmbeddingFailure,
    KeywordGroupingError,
    PreconditionViolation,
)

__all__ = [
    "GroupKeys",
    "DEFAULT_GROUP_KEYS",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "KeywordGroupingError",
    "EmbeddingFailure",
    "DimensionMismatch",
    "PreconditionViolation",
]
