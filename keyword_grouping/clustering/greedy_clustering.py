"""
Greedy similarity clustering of keywords for content planning.

Keywords whose embeddings are close enough are grouped so that one article
can cover the whole group. The algorithm works on a precomputed cosine
similarity matrix:

1. Connectivity ranking
    Every keyword is ranked by how many other keywords reach the similarity
    threshold. Highly connected keywords seed groups first, so dense
    neighbourhoods end up in one group instead of being split.
2. Seeded group formation
    An unassigned seed starts a group. Another unassigned keyword joins when
    it reaches the threshold against the seed AND its average similarity to
    all current members also reaches the threshold.
3. Early stop
    With a target article count, seeding stops once that many groups exist.
4. Reassignment
    Leftover keywords join the best-matching group when their average
    similarity reaches ``threshold * REASSIGNMENT_THRESHOLD_FACTOR`` and the
    group holds fewer than ``MAX_GROUP_SIZE`` members; otherwise they start a
    new group. No keyword is ever dropped.
5. Primary selection and reporting
    The member with the highest average similarity to the rest becomes the
    primary keyword (ties keep the member that joined the group first).
    Mean pairwise similarity is reported rounded to three decimals.

Given the same keywords, matrix, threshold and target count the output is
fully deterministic.

Examples
--------
>>> from langchain_openai import OpenAIEmbeddings
>>> from keyword_grouping.clustering import cluster_keywords_by_similarity
>>> from keyword_grouping.embeddings import KeywordEmbedder
>>> embedder = KeywordEmbedder(OpenAIEmbeddings(model="text-embedding-3-small"))
>>> groups = cluster_keywords_by_similarity(
...     ["best running shoes", "top running shoes 2024", "how to bake bread"],
...     embedder=embedder,
...     similarity_threshold=0.75,
... )
>>> for group in groups:
...     print(group.group_id, group.primary_keyword, group.secondary_keywords)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from keyword_grouping.DEFAULT_CONSTS import (
    DEFAULT_GROUP_KEYS,
    DEFAULT_SIMILARITY_THRESHOLD,
    MAX_GROUP_SIZE,
    RECOMMENDED_ARTICLE_COUNT,
    REASSIGNMENT_THRESHOLD_FACTOR,
    SIMILARITY_DECIMALS,
    SINGLETON_SIMILARITY,
    GroupKeys,
)
from keyword_grouping.exceptions import PreconditionViolation

from .similarity import KeywordIndex, build_similarity_matrix

LOGGER = logging.getLogger(__name__)


@dataclass
class KeywordGroup:
    """A group of keywords to be covered by one article.

    Attributes
    ----------
    group_id : int
        1-based ordinal in creation order
    primary_keyword : str
        Most central member, used as the group label
    secondary_keywords : List[str]
        Remaining members in input order
    average_similarity : float
        Mean pairwise similarity of the members (1.0 for a single keyword)
    """

    group_id: int
    primary_keyword: str
    secondary_keywords: List[str] = field(default_factory=list)
    average_similarity: float = SINGLETON_SIMILARITY

    @property
    def keywords(self) -> List[str]:
        """All members, primary first."""
        return [self.primary_keyword, *self.secondary_keywords]

    @property
    def size(self) -> int:
        return 1 + len(self.secondary_keywords)

    def to_record(self, keys: GroupKeys = DEFAULT_GROUP_KEYS) -> Dict[str, Any]:
        """Flat record used for persistence and JSON export."""
        return {
            keys.group_id: self.group_id,
            keys.keywords: self.keywords,
            keys.primary_keyword: self.primary_keyword,
            keys.secondary_keywords: list(self.secondary_keywords),
            keys.average_similarity_score: self.average_similarity,
            keys.recommended_article_count: RECOMMENDED_ARTICLE_COUNT,
        }

    @classmethod
    def from_record(
        cls, record: Dict[str, Any], keys: GroupKeys = DEFAULT_GROUP_KEYS
    ) -> "KeywordGroup":
        """Inverse of :meth:`to_record`."""
        return cls(
            group_id=int(record[keys.group_id]),
            primary_keyword=record[keys.primary_keyword],
            secondary_keywords=list(record[keys.secondary_keywords]),
            average_similarity=float(record[keys.average_similarity_score]),
        )


def _rank_by_connectivity(matrix: np.ndarray, threshold: float) -> List[int]:
    """Row indices sorted by connectivity, descending; ties keep input order."""
    hits = matrix >= threshold
    np.fill_diagonal(hits, False)
    connectivity = hits.sum(axis=1)
    return sorted(range(matrix.shape[0]), key=lambda idx: -int(connectivity[idx]))


def _seed_groups(
    matrix: np.ndarray,
    seed_order: List[int],
    threshold: float,
    target_article_count: Optional[int],
) -> Tuple[List[List[int]], np.ndarray]:
    """Form groups around connectivity-ranked seeds.

    Returns the member lists and the assignment mask.
    """
    n = matrix.shape[0]
    assigned = np.zeros(n, dtype=bool)
    groups: List[List[int]] = []

    for center in seed_order:
        if assigned[center]:
            continue

        members = [center]
        assigned[center] = True

        for candidate in range(n):
            if assigned[candidate] or matrix[center, candidate] < threshold:
                continue
            # Must also be close to the group as a whole, not just the seed
            if float(np.mean(matrix[members, candidate])) >= threshold:
                members.append(candidate)
                assigned[candidate] = True

        groups.append(members)

        if target_article_count is not None and len(groups) >= target_article_count:
            LOGGER.debug(f"Reached target of {target_article_count} groups, stop seeding")
            break

    return groups, assigned


def _reassign_leftovers(
    matrix: np.ndarray,
    groups: List[List[int]],
    assigned: np.ndarray,
    threshold: float,
) -> List[List[int]]:
    """Place every unassigned keyword into a group, opening new ones if needed."""
    groups = [list(members) for members in groups]
    relaxed_threshold = threshold * REASSIGNMENT_THRESHOLD_FACTOR

    for idx in np.flatnonzero(~assigned):
        idx = int(idx)
        best_group = -1
        best_similarity = -np.inf

        for group_idx, members in enumerate(groups):
            avg_similarity = float(np.mean(matrix[idx, members]))
            if avg_similarity > best_similarity:
                best_similarity = avg_similarity
                best_group = group_idx

        if (
            best_group >= 0
            and best_similarity >= relaxed_threshold
            and len(groups[best_group]) < MAX_GROUP_SIZE
        ):
            groups[best_group].append(idx)
            LOGGER.debug(
                f"Reassigned keyword {idx} to group {best_group + 1} "
                f"(avg similarity {best_similarity:.3f})"
            )
        else:
            groups.append([idx])
            LOGGER.debug(f"Keyword {idx} starts its own group {len(groups)}")

    return groups


def _select_primary(members: List[int], matrix: np.ndarray) -> int:
    """Member with the highest average similarity to the other members.

    ``members`` is in join order: seed first, then seeded members, then
    reassigned ones. Only a strictly greater average replaces the current
    best, so ties keep the member that joined first.
    """
    best_idx = members[0]
    best_avg = 0.0

    for candidate in members:
        others = [m for m in members if m != candidate]
        avg = float(np.mean(matrix[candidate, others])) if others else SINGLETON_SIMILARITY
        if avg > best_avg:
            best_avg = avg
            best_idx = candidate

    return best_idx


def _average_pairwise_similarity(members: List[int], matrix: np.ndarray) -> float:
    """Mean similarity over all distinct member pairs."""
    if len(members) < 2:
        return SINGLETON_SIMILARITY

    rows, cols = np.triu_indices(len(members), k=1)
    member_arr = np.asarray(members)
    return float(np.mean(matrix[member_arr[rows], member_arr[cols]]))


class GreedyKeywordClusterer:
    """
    Group keywords from a precomputed similarity matrix.

    The clusterer keeps only its configuration; every call to :meth:`fit`
    works on local state and returns fresh groups.
    """

    def __init__(
        self,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        target_article_count: Optional[int] = None,
    ):
        """
        Initialize the clusterer.

        Parameters
        ----------
        similarity_threshold : float
            Inclusive similarity bar for group membership, in [0, 1]
        target_article_count : Optional[int]
            Stop seeding new groups once this many exist (None = no limit)
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(
                f"Threshold must be between 0 and 1, got {similarity_threshold}"
            )
        if target_article_count is not None and target_article_count < 1:
            raise ValueError(
                f"target_article_count must be at least 1, got {target_article_count}"
            )

        self.similarity_threshold = similarity_threshold
        self.target_article_count = target_article_count

    @classmethod
    def from_config(cls, config) -> "GreedyKeywordClusterer":
        """Create a clusterer from a :class:`~keyword_grouping.config.ClusteringConfig`."""
        return cls(
            similarity_threshold=config.similarity_threshold,
            target_article_count=config.target_article_count,
        )

    @staticmethod
    def _validate_inputs(
        index: KeywordIndex, n_keywords: int, similarity_matrix: Any
    ) -> np.ndarray:
        """Check the matrix shape against the keyword list."""
        if len(index) != n_keywords:
            message = f"Keywords must be unique, got {n_keywords - len(index)} duplicates"
            LOGGER.error(message)
            raise PreconditionViolation(message)

        try:
            matrix = np.asarray(similarity_matrix, dtype=np.float64)
        except (TypeError, ValueError) as e:
            LOGGER.error(f"Similarity matrix is not numeric: {e}")
            raise PreconditionViolation(f"Similarity matrix is not numeric: {e}") from e

        if n_keywords == 0 and matrix.size == 0:
            return matrix.reshape(0, 0)

        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            message = f"Similarity matrix must be square, got shape {matrix.shape}"
            LOGGER.error(message)
            raise PreconditionViolation(message)

        if matrix.shape[0] != n_keywords:
            message = (
                f"Similarity matrix is {matrix.shape[0]}x{matrix.shape[1]} "
                f"but {n_keywords} keywords were given"
            )
            LOGGER.error(message)
            raise PreconditionViolation(message)

        return matrix

    def fit(
        self,
        keywords: Sequence[str],
        similarity_matrix: Union[np.ndarray, Sequence[Sequence[float]]],
    ) -> List[KeywordGroup]:
        """
        Group keywords using their pairwise similarity matrix.

        Parameters
        ----------
        keywords : Sequence[str]
            Unique keywords, in the row order of the matrix
        similarity_matrix : array-like
            Square matrix of shape (N, N)

        Returns
        -------
        List[KeywordGroup]
            Groups in creation order; every keyword appears in exactly one

        Raises
        ------
        PreconditionViolation
            If the matrix is not square, does not match the keyword count,
            or keywords are repeated
        """
        keywords = list(keywords)
        index = KeywordIndex(keywords)
        matrix = self._validate_inputs(index, len(keywords), similarity_matrix)

        if not keywords:
            return []

        if len(keywords) == 1:
            return [KeywordGroup(group_id=1, primary_keyword=keywords[0])]

        threshold = self.similarity_threshold
        seed_order = _rank_by_connectivity(matrix, threshold)
        seeded, assigned = _seed_groups(
            matrix, seed_order, threshold, self.target_article_count
        )
        member_lists = _reassign_leftovers(matrix, seeded, assigned, threshold)

        groups = []
        for group_id, members in enumerate(member_lists, start=1):
            primary = _select_primary(members, matrix)
            ordered = sorted(members)
            groups.append(
                KeywordGroup(
                    group_id=group_id,
                    primary_keyword=index.keyword_at(primary),
                    secondary_keywords=[
                        index.keyword_at(m) for m in ordered if m != primary
                    ],
                    average_similarity=round(
                        _average_pairwise_similarity(ordered, matrix),
                        SIMILARITY_DECIMALS,
                    ),
                )
            )

        LOGGER.info(f"Created {len(groups)} groups from {len(keywords)} keywords")

        return groups


def cluster_keywords_by_similarity(
    keywords: Sequence[str],
    embedder=None,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    target_article_count: Optional[int] = None,
    show_progress: bool = False,
) -> List[KeywordGroup]:
    """
    Complete pipeline: embed keywords, build similarities and group them.

    Parameters
    ----------
    keywords : Sequence[str]
        Keywords to group; duplicates collapse to one entry
    embedder : Optional[KeywordEmbedder]
        Embedding provider. A default OpenAI-backed
        :class:`~keyword_grouping.embeddings.KeywordEmbedder` is created when
        None and embeddings are needed.
    similarity_threshold : float
        Inclusive similarity bar for group membership
    target_article_count : Optional[int]
        Upper bound on seeded groups
    show_progress : bool
        Whether to show a progress bar while embedding

    Returns
    -------
    List[KeywordGroup]
        Keyword groups in creation order

    Raises
    ------
    EmbeddingFailure
        If the embedding provider fails; no groups are produced
    DimensionMismatch
        If the provider returns vectors of different lengths
    """
    clusterer = GreedyKeywordClusterer(
        similarity_threshold=similarity_threshold,
        target_article_count=target_article_count,
    )
    index = KeywordIndex(keywords)

    # Zero or one keyword never reaches the embedding model
    if len(index) < 2:
        return clusterer.fit(index.keywords, np.eye(len(index)))

    if embedder is None:
        from keyword_grouping.embeddings import KeywordEmbedder

        embedder = KeywordEmbedder()

    LOGGER.info(f"Generating embeddings for {len(index)} keywords")
    keyword_embeddings = embedder.create_embeddings(index.keywords, show_progress=show_progress)

    similarity_matrix = build_similarity_matrix(index.keywords, keyword_embeddings)

    return clusterer.fit(index.keywords, similarity_matrix)


def save_groups(
    groups: List[KeywordGroup],
    output_path: Union[str, Path],
    metadata: Optional[Dict[str, Any]] = None,
):
    """
    Save keyword groups to a JSON file.

    Parameters
    ----------
    groups : List[KeywordGroup]
        Groups to save
    output_path : str or Path
        Path of the JSON file
    metadata : Optional[Dict[str, Any]]
        Additional metadata to include
    """
    output_data = {
        "metadata": {
            "n_groups": len(groups),
            "n_keywords": sum(group.size for group in groups),
            **(metadata or {}),
        },
        "groups": [group.to_record() for group in groups],
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2, ensure_ascii=False)

    LOGGER.info(f"Saved {len(groups)} keyword groups to {output_path}")


def load_groups(
    input_path: Union[str, Path],
) -> Tuple[List[KeywordGroup], Dict[str, Any]]:
    """
    Load keyword groups from a JSON file written by :func:`save_groups`.

    Returns
    -------
    Tuple[List[KeywordGroup], Dict[str, Any]]
        Tuple of (groups, metadata)
    """
    with open(input_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    groups = [KeywordGroup.from_record(record) for record in data.get("groups", [])]
    metadata = data.get("metadata", {})

    LOGGER.info(f"Loaded {len(groups)} keyword groups from {input_path}")

    return groups, metadata
