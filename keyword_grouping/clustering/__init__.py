"""
Similarity clustering of keyword embeddings.

This module provides the grouping stages of the pipeline:

- cosine_similarity / build_similarity_matrix: pairwise cosine similarity with
  an exactly symmetric matrix and a 1.0 diagonal
- KeywordIndex: explicit keyword <-> matrix row lookup
- GreedyKeywordClusterer: connectivity-seeded greedy grouping with a relaxed
  reassignment pass and primary keyword selection
- cluster_keywords_by_similarity: embed, compare and group in one call
- save_groups / load_groups: JSON export of keyword groups
"""

from .greedy_clustering import (GreedyKeywordClusterer, KeywordGroup,
                                cluster_keywords_by_similarity, load_groups,
                                save_groups)
from .similarity import KeywordIndex, build_similarity_matrix, cosine_similarity

__all__ = [
    "GreedyKeywordClusterer",
    "KeywordGroup",
    "KeywordIndex",
    "build_similarity_matrix",
    "cluster_keywords_by_similarity",
    "cosine_similarity",
    "load_groups",
    "save_groups",
]
