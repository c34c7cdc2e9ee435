"""
Pairwise cosine similarity for keyword embeddings.

Provides the similarity stage of the grouping pipeline:
- ``cosine_similarity`` for a single pair of vectors
- ``KeywordIndex`` for the explicit keyword <-> matrix row mapping
- ``build_similarity_matrix`` for the full symmetric N x N matrix

The matrix diagonal is written as exactly 1.0 and the lower triangle is a
mirror of the upper one, so ``matrix[i, j] == matrix[j, i]`` holds bit for bit.
"""

import logging
from typing import Dict, Iterable, List, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine_similarity

from keyword_grouping.exceptions import DimensionMismatch, PreconditionViolation

LOGGER = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Parameters
    ----------
    vec_a, vec_b : Sequence[float]
        Vectors of equal length

    Returns
    -------
    float
        Dot product divided by the product of the L2 norms

    Raises
    ------
    DimensionMismatch
        If the vectors have different lengths
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape:
        raise DimensionMismatch(
            f"Vectors must have the same length, got {a.shape[0]} and {b.shape[0]}"
        )

    return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b)))


class KeywordIndex:
    """Bidirectional mapping between keywords and similarity matrix rows.

    Duplicate keywords collapse onto the index of their first occurrence.

    Examples
    --------
    >>> index = KeywordIndex(["seo tips", "seo guide", "seo tips"])
    >>> len(index)
    2
    >>> index.index_of("seo guide")
    1
    >>> index.keyword_at(0)
    'seo tips'
    """

    def __init__(self, keywords: Iterable[str]):
        self._keywords: List[str] = list(dict.fromkeys(keywords))
        self._positions: Dict[str, int] = {
            keyword: idx for idx, keyword in enumerate(self._keywords)
        }

    def __len__(self) -> int:
        return len(self._keywords)

    def __contains__(self, keyword: str) -> bool:
        return keyword in self._positions

    def __iter__(self):
        return iter(self._keywords)

    @property
    def keywords(self) -> List[str]:
        """Keywords in row order."""
        return list(self._keywords)

    def index_of(self, keyword: str) -> int:
        """Matrix row of ``keyword``."""
        try:
            return self._positions[keyword]
        except KeyError:
            raise KeyError(f"Unknown keyword: {keyword!r}") from None

    def keyword_at(self, index: int) -> str:
        """Keyword stored at matrix row ``index``."""
        return self._keywords[index]


def build_similarity_matrix(
    keywords: Sequence[str],
    keyword_embeddings: Dict[str, np.ndarray],
) -> np.ndarray:
    """
    Build the pairwise cosine similarity matrix for a keyword list.

    Parameters
    ----------
    keywords : Sequence[str]
        Unique keywords; row/column order of the result
    keyword_embeddings : Dict[str, np.ndarray]
        Mapping from keyword to embedding vector

    Returns
    -------
    np.ndarray
        Symmetric matrix of shape (N, N) with 1.0 on the diagonal

    Raises
    ------
    PreconditionViolation
        If a keyword has no embedding or keywords are not unique
    DimensionMismatch
        If embeddings have different lengths
    """
    if len(set(keywords)) != len(keywords):
        raise PreconditionViolation("Keywords must be unique to build a similarity matrix")

    missing = [kw for kw in keywords if kw not in keyword_embeddings]
    if missing:
        raise PreconditionViolation(
            f"No embedding for {len(missing)} keywords, e.g. {missing[:3]}"
        )

    n = len(keywords)
    if n == 0:
        return np.zeros((0, 0), dtype=np.float64)

    vectors = [np.asarray(keyword_embeddings[kw], dtype=np.float64) for kw in keywords]
    expected_dim = vectors[0].shape[0]
    for keyword, vector in zip(keywords, vectors):
        if vector.ndim != 1 or vector.shape[0] != expected_dim:
            raise DimensionMismatch(
                f"Embedding for {keyword!r} has shape {vector.shape}, "
                f"expected ({expected_dim},)"
            )

    embeddings_matrix = np.vstack(vectors)
    raw = pairwise_cosine_similarity(embeddings_matrix)

    # Mirror the strict upper triangle so the result is exactly symmetric
    upper = np.triu(raw, k=1)
    matrix = upper + upper.T
    np.fill_diagonal(matrix, 1.0)

    LOGGER.debug(f"Built {n}x{n} similarity matrix (dim={expected_dim})")

    return matrix
