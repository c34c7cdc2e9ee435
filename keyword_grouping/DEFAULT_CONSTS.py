"""Shared constants for the keyword grouping pipeline.

This module is the single source of truth for:

* :data:`DEFAULT_GROUP_KEYS`: field names of a persisted or exported
  keyword group record, produced by
  :meth:`~keyword_grouping.clustering.KeywordGroup.to_record` and consumed by
  :class:`~keyword_grouping.storage.KeywordGroupStore` and the JSON export.
* Clustering and embedding constants (threshold defaults, reassignment
  factor, group size cap, batch size, rate-limit delay).

Overriding defaults
-------------------
``GroupKeys`` is a ``frozen=True`` dataclass. To rename record fields for a
single export, build a modified copy with :func:`dataclasses.replace`::

    import dataclasses
    from keyword_grouping.DEFAULT_CONSTS import DEFAULT_GROUP_KEYS

    keys = dataclasses.replace(DEFAULT_GROUP_KEYS, primary_keyword="label")

``REASSIGNMENT_THRESHOLD_FACTOR`` and ``MAX_GROUP_SIZE`` are not exposed
through :class:`~keyword_grouping.config.ClusteringConfig`; they are
configuration candidates and are tuned here.
"""

from dataclasses import dataclass

__all__ = [
    "GroupKeys",
    "DEFAULT_GROUP_KEYS",
    "DEFAULT_SIMILARITY_THRESHOLD",
    "REASSIGNMENT_THRESHOLD_FACTOR",
    "MAX_GROUP_SIZE",
    "SINGLETON_SIMILARITY",
    "SIMILARITY_DECIMALS",
    "EMBEDDING_BATCH_SIZE",
    "EMBEDDING_BATCH_DELAY_SECONDS",
    "DEFAULT_EMBEDDING_MODEL",
    "RECOMMENDED_ARTICLE_COUNT",
]


# ---------------------------------------------------------------------------
# Group record key schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupKeys:
    """Field names of a keyword group record.

    Attributes
    ----------
    group_id : str
        1-based ordinal of the group within one clustering run.
    keywords : str
        All member keywords, primary first.
    primary_keyword : str
        The most central member of the group.
    secondary_keywords : str
        Remaining members in input order.
    average_similarity_score : str
        Mean pairwise similarity, rounded to ``SIMILARITY_DECIMALS``.
    recommended_article_count : str
        Articles planned for the group (always ``RECOMMENDED_ARTICLE_COUNT``).
    """

    group_id: str = "group_id"
    keywords: str = "keywords"
    primary_keyword: str = "primary_keyword"
    secondary_keywords: str = "secondary_keywords"
    average_similarity_score: str = "average_similarity_score"
    recommended_article_count: str = "recommended_article_count"


DEFAULT_GROUP_KEYS = GroupKeys()

# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------

# Inclusive (>=) cosine similarity bar for seeding and group membership.
DEFAULT_SIMILARITY_THRESHOLD: float = 0.75

# Leftover keywords join an existing group when their average similarity to
# it reaches threshold * factor.
REASSIGNMENT_THRESHOLD_FACTOR: float = 0.8

# A group that already holds this many members accepts no leftovers.
MAX_GROUP_SIZE: int = 10

# Reported average similarity of a one-member group.
SINGLETON_SIMILARITY: float = 1.0

SIMILARITY_DECIMALS: int = 3

# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------

# Upper bound on inputs per embedding request.
EMBEDDING_BATCH_SIZE: int = 100

# Pause between consecutive embedding requests (rate limiting).
EMBEDDING_BATCH_DELAY_SECONDS: float = 0.1

DEFAULT_EMBEDDING_MODEL: str = "text-embedding-3-small"

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

# One article is planned per semantic group.
RECOMMENDED_ARTICLE_COUNT: int = 1
