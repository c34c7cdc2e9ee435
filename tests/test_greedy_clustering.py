"""
Unit tests for greedy_clustering module.

Tests cover:
- Trivial inputs (no keyword, one keyword)
- Connectivity-ranked seeding and the group-average membership check
- Early stop with a target article count and the reassignment pass
- Primary keyword selection and average similarity reporting
- Input validation
- Partition properties: completeness, determinism, threshold monotonicity
"""

import logging

import numpy as np
import pytest

from keyword_grouping.clustering import (
    GreedyKeywordClusterer,
    KeywordGroup,
    build_similarity_matrix,
)
from keyword_grouping.config import ClusteringConfig
from keyword_grouping.exceptions import PreconditionViolation


@pytest.fixture
def two_topic_matrix():
    """Running shoes (0.91) and bread (0.88) keywords, weak cross-topic links."""
    keywords = [
        "best running shoes",
        "top running shoes 2024",
        "how to bake bread",
        "bread baking tips",
    ]
    matrix = np.array(
        [
            [1.0, 0.91, 0.20, 0.10],
            [0.91, 1.0, 0.15, 0.25],
            [0.20, 0.15, 1.0, 0.88],
            [0.10, 0.25, 0.88, 1.0],
        ]
    )
    return keywords, matrix


@pytest.fixture
def dense_and_pair_matrix():
    """
    Pair A = {kw_0, kw_5} (0.9) and dense cluster B = {kw_1..kw_4} (0.9).

    Cross-cluster similarity is 0.3. B members have higher connectivity, so
    B must be seeded first even though kw_0 comes first in the input.
    """
    n = 6
    matrix = np.full((n, n), 0.3)
    for i in (1, 2, 3, 4):
        for j in (1, 2, 3, 4):
            matrix[i, j] = 0.9
    matrix[0, 5] = matrix[5, 0] = 0.9
    np.fill_diagonal(matrix, 1.0)
    keywords = [f"kw_{i}" for i in range(n)]
    return keywords, matrix


@pytest.fixture
def separated_embeddings():
    """
    Ten keywords in three well separated clusters (sizes 4, 3, 3).

    Members share a cluster axis and get a small offset on their own axis,
    so within-cluster similarity is about 0.9975 and cross-cluster
    similarity is close to 0.
    """
    embeddings = {}
    sizes = [4, 3, 3]
    dim = 10
    for cluster_id, size in enumerate(sizes):
        for member in range(size):
            vector = np.zeros(dim)
            vector[cluster_id] = 1.0
            vector[3 + member] = 0.05
            embeddings[f"topic{cluster_id}_kw{member}"] = vector
    return embeddings


def _all_members(groups):
    return [kw for group in groups for kw in group.keywords]


class TestTrivialCases:
    """Empty and single keyword inputs."""

    def test_empty_input(self):
        groups = GreedyKeywordClusterer().fit([], np.zeros((0, 0)))

        assert groups == [], "No keywords must give no groups"

    def test_single_keyword(self):
        groups = GreedyKeywordClusterer().fit(["only keyword"], [[1.0]])

        assert len(groups) == 1, "One keyword must give exactly one group"
        group = groups[0]
        assert group.group_id == 1, "Group ids start at 1"
        assert group.primary_keyword == "only keyword", "The keyword must be primary"
        assert group.secondary_keywords == [], "Secondary list must be empty"
        assert group.average_similarity == 1.0, "Singleton similarity must be 1.0"


class TestSeeding:
    """Connectivity ranking and seeded group formation."""

    def test_two_topics(self, two_topic_matrix):
        keywords, matrix = two_topic_matrix
        groups = GreedyKeywordClusterer(similarity_threshold=0.75).fit(keywords, matrix)

        assert len(groups) == 2, f"Expected 2 groups, got {len(groups)}"
        shoes, bread = groups
        assert shoes.primary_keyword == "best running shoes", (
            "Tie on average similarity keeps the seed keyword as primary"
        )
        assert shoes.secondary_keywords == ["top running shoes 2024"]
        assert shoes.average_similarity == pytest.approx(0.91)
        assert bread.primary_keyword == "how to bake bread"
        assert bread.secondary_keywords == ["bread baking tips"]
        assert bread.average_similarity == pytest.approx(0.88)

    def test_dense_cluster_seeded_first(self, dense_and_pair_matrix):
        keywords, matrix = dense_and_pair_matrix
        groups = GreedyKeywordClusterer(similarity_threshold=0.75).fit(keywords, matrix)

        assert [g.group_id for g in groups] == [1, 2], "Group ids follow creation order"
        assert sorted(groups[0].keywords) == ["kw_1", "kw_2", "kw_3", "kw_4"], (
            "Most connected keywords must form the first group"
        )
        assert sorted(groups[1].keywords) == ["kw_0", "kw_5"]

    def test_group_average_rejects_outlier(self):
        # kw_2 is close to the seed (0.8) but not to kw_1 (0.5)
        matrix = np.array(
            [
                [1.0, 0.9, 0.8],
                [0.9, 1.0, 0.5],
                [0.8, 0.5, 1.0],
            ]
        )
        groups = GreedyKeywordClusterer(similarity_threshold=0.75).fit(
            ["kw_0", "kw_1", "kw_2"], matrix
        )

        assert [g.keywords for g in groups] == [["kw_0", "kw_1"], ["kw_2"]], (
            "Candidate below the group average must not join the group"
        )
        assert groups[1].average_similarity == 1.0, "Singleton similarity must be 1.0"

    def test_threshold_is_inclusive(self):
        matrix = np.array([[1.0, 0.75], [0.75, 1.0]])
        groups = GreedyKeywordClusterer(similarity_threshold=0.75).fit(["a", "b"], matrix)

        assert len(groups) == 1, "Similarity equal to the threshold must group"


class TestEarlyStopAndReassignment:
    """Target article count and the relaxed reassignment pass."""

    def test_leftover_joins_existing_group(self):
        # kw_2 misses the 0.75 bar but clears the relaxed 0.6 bar
        matrix = np.array(
            [
                [1.0, 0.9, 0.7],
                [0.9, 1.0, 0.7],
                [0.7, 0.7, 1.0],
            ]
        )
        keywords = ["kw_0", "kw_1", "kw_2"]

        without_target = GreedyKeywordClusterer(0.75).fit(keywords, matrix)
        with_target = GreedyKeywordClusterer(0.75, target_article_count=1).fit(
            keywords, matrix
        )

        assert len(without_target) == 2, "Without a target kw_2 seeds its own group"
        assert len(with_target) == 1, "With target 1 kw_2 must be reassigned"
        group = with_target[0]
        assert group.primary_keyword == "kw_0"
        assert group.secondary_keywords == ["kw_1", "kw_2"]
        assert group.average_similarity == pytest.approx(0.767)

    def test_leftover_below_relaxed_bar_starts_group(self, two_topic_matrix):
        keywords, matrix = two_topic_matrix
        groups = GreedyKeywordClusterer(0.75, target_article_count=1).fit(keywords, matrix)

        assert len(groups) == 2, (
            "Bread keywords must open a new group and the second must join it"
        )
        assert groups[1].keywords == ["how to bake bread", "bread baking tips"]

    def test_target_count_stops_seeding(self, separated_embeddings):
        keywords = list(separated_embeddings)
        matrix = build_similarity_matrix(keywords, separated_embeddings)

        groups = GreedyKeywordClusterer(0.75, target_article_count=1).fit(keywords, matrix)

        assert sorted(_all_members(groups)) == sorted(keywords), "No keyword may be dropped"
        assert len(groups) == 3, (
            "Leftover topics must regroup through reassignment into their own groups"
        )

    def test_reassignment_respects_group_size_cap(self):
        # 0-8 mutually 0.95; 9-13 at 0.7 to the core and 0.0 to each other
        n = 14
        matrix = np.zeros((n, n))
        matrix[:9, :9] = 0.95
        matrix[:9, 9:] = 0.7
        matrix[9:, :9] = 0.7
        np.fill_diagonal(matrix, 1.0)
        keywords = [f"kw_{i}" for i in range(n)]

        groups = GreedyKeywordClusterer(0.75, target_article_count=1).fit(keywords, matrix)

        sizes = [g.size for g in groups]
        assert sizes == [10, 1, 1, 1, 1], f"Expected one capped group of 10, got {sizes}"
        assert max(sizes) <= 10, "Reassignment must never grow a group past 10"
        assert "kw_9" in groups[0].keywords, "First leftover fills the last free slot"


class TestPrimarySelection:
    """Primary keyword is the most central member."""

    def test_most_central_member_is_primary(self):
        matrix = np.array(
            [
                [1.0, 0.80, 0.76],
                [0.80, 1.0, 0.90],
                [0.76, 0.90, 1.0],
            ]
        )
        groups = GreedyKeywordClusterer(0.75).fit(["a", "b", "c"], matrix)

        assert len(groups) == 1, "All three keywords must form one group"
        group = groups[0]
        assert group.primary_keyword == "b", "b has the highest average similarity"
        assert group.secondary_keywords == ["a", "c"], "Secondaries keep input order"
        assert group.average_similarity == pytest.approx(0.82)

    def test_tie_keeps_seed_over_earlier_input(self):
        # b is the most connected keyword and seeds {b, a}; c fails the group average
        matrix = np.array(
            [
                [1.0, 0.9, 0.3],
                [0.9, 1.0, 0.8],
                [0.3, 0.8, 1.0],
            ]
        )
        groups = GreedyKeywordClusterer(0.75).fit(["a", "b", "c"], matrix)

        assert [g.keywords for g in groups] == [["b", "a"], ["c"]], (
            "Tied averages must keep the seed as primary even when it comes later in the input"
        )

    def test_primary_centrality_property(self):
        rng = np.random.default_rng(5)
        keywords = [f"kw_{i}" for i in range(25)]
        embeddings = {kw: rng.normal(size=8) for kw in keywords}
        matrix = build_similarity_matrix(keywords, embeddings)
        position = {kw: i for i, kw in enumerate(keywords)}

        for group in GreedyKeywordClusterer(0.3).fit(keywords, matrix):
            if group.size < 2:
                continue

            def avg_to_rest(keyword):
                others = [position[k] for k in group.keywords if k != keyword]
                return float(np.mean(matrix[position[keyword], others]))

            primary_avg = avg_to_rest(group.primary_keyword)
            for keyword in group.secondary_keywords:
                assert primary_avg >= avg_to_rest(keyword) - 1e-12, (
                    f"Primary of group {group.group_id} must be the most central member"
                )


class TestValidation:
    """Parameter and precondition checks."""

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValueError, match="Threshold must be between 0 and 1"):
            GreedyKeywordClusterer(similarity_threshold=threshold)

    def test_invalid_target_count(self):
        with pytest.raises(ValueError, match="target_article_count"):
            GreedyKeywordClusterer(target_article_count=0)

    def test_non_square_matrix(self):
        with pytest.raises(PreconditionViolation, match="square"):
            GreedyKeywordClusterer().fit(["a", "b"], np.ones((2, 3)))

    def test_matrix_size_mismatch(self):
        with pytest.raises(PreconditionViolation, match="3 keywords"):
            GreedyKeywordClusterer().fit(["a", "b", "c"], np.eye(2))

    def test_ragged_matrix(self):
        with pytest.raises(PreconditionViolation):
            GreedyKeywordClusterer().fit(["a", "b"], [[1.0, 0.5], [0.5]])

    def test_duplicate_keywords(self):
        with pytest.raises(PreconditionViolation, match="unique"):
            GreedyKeywordClusterer().fit(["a", "a"], np.eye(2))

    def test_precondition_failure_logged(self, caplog):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(PreconditionViolation):
                GreedyKeywordClusterer().fit(["a", "b"], np.ones((2, 3)))

        assert "must be square" in caplog.text, "Precondition failures must be logged"

    def test_from_config(self):
        config = ClusteringConfig(similarity_threshold=0.6, target_article_count=4)
        clusterer = GreedyKeywordClusterer.from_config(config)

        assert clusterer.similarity_threshold == 0.6
        assert clusterer.target_article_count == 4


class TestPartitionProperties:
    """Completeness, determinism and threshold monotonicity."""

    @pytest.mark.parametrize("threshold", [0.0, 0.3, 0.75, 0.95])
    @pytest.mark.parametrize("target", [None, 1, 3])
    def test_every_keyword_in_exactly_one_group(self, threshold, target):
        rng = np.random.default_rng(11)
        keywords = [f"kw_{i}" for i in range(25)]
        embeddings = {kw: rng.normal(size=8) for kw in keywords}
        matrix = build_similarity_matrix(keywords, embeddings)

        groups = GreedyKeywordClusterer(threshold, target_article_count=target).fit(
            keywords, matrix
        )
        members = _all_members(groups)

        assert len(members) == len(set(members)), "No keyword may appear twice"
        assert set(members) == set(keywords), "Every keyword must be placed"
        assert [g.group_id for g in groups] == list(range(1, len(groups) + 1)), (
            "Group ids must be sequential from 1"
        )

    def test_deterministic(self):
        rng = np.random.default_rng(3)
        keywords = [f"kw_{i}" for i in range(30)]
        embeddings = {kw: rng.normal(size=6) for kw in keywords}
        matrix = build_similarity_matrix(keywords, embeddings)

        first = GreedyKeywordClusterer(0.4, target_article_count=5).fit(keywords, matrix)
        second = GreedyKeywordClusterer(0.4, target_article_count=5).fit(keywords, matrix)

        assert first == second, "Identical inputs must give identical groups"

    def test_threshold_monotonicity(self, separated_embeddings):
        keywords = list(separated_embeddings)
        matrix = build_similarity_matrix(keywords, separated_embeddings)

        counts = [
            len(GreedyKeywordClusterer(threshold).fit(keywords, matrix))
            for threshold in (0.3, 0.5, 0.75, 0.9, 0.99, 0.999)
        ]

        assert counts == sorted(counts), f"Group count must not shrink: {counts}"
        assert counts[0] == 3, "Well separated topics must give 3 groups"
        assert counts[-1] == len(keywords), "Near-1.0 threshold isolates every keyword"


class TestKeywordGroup:
    """KeywordGroup record conversion."""

    def test_record_fields(self):
        group = KeywordGroup(3, "seo audit", ["site audit", "seo checklist"], 0.812)
        record = group.to_record()

        assert record == {
            "group_id": 3,
            "keywords": ["seo audit", "site audit", "seo checklist"],
            "primary_keyword": "seo audit",
            "secondary_keywords": ["site audit", "seo checklist"],
            "average_similarity_score": 0.812,
            "recommended_article_count": 1,
        }
        assert KeywordGroup.from_record(record) == group, "from_record must invert to_record"
