"""Tests for per-candidate anti-similarity signals."""

import numpy as np
import pytest

from nemesis.feature_engineering import (
    anti_similarity,
    compute_profile_components,
    compute_tag_embedding_scores,
    compute_tag_overlap_scores,
    TagAntiSimilarityAggregator,
    TagOverlapEstimator,
)


class TestAntiSimilarity:
    def test_maps_distance_range_to_unit_interval(self):
        """Opposite directions (distance 2) are the most anti-similar."""
        assert anti_similarity(np.array([0.0, 1.0, 2.0])).tolist() == [0.0, 0.5, 1.0]


class TestProfileComponents:
    def test_same_direction_scores_zero(self):
        components = compute_profile_components([np.array([2.0, 0.0])], np.array([1.0, 0.0]))
        assert components[0] == pytest.approx(0.0)

    def test_reversed_vector_scores_one(self):
        components = compute_profile_components([np.array([-1.0, 0.0])], np.array([1.0, 0.0]))
        assert components[0] == pytest.approx(1.0)

    def test_orthogonal_vector_scores_half(self):
        components = compute_profile_components([np.array([0.0, 3.0])], np.array([1.0, 0.0]))
        assert components[0] == pytest.approx(0.5)

    def test_missing_embedding_is_neutral_not_zero(self):
        components = compute_profile_components(
            [None, np.array([-1.0, 0.0]), None], np.array([1.0, 0.0])
        )
        assert components.tolist() == pytest.approx([0.5, 1.0, 0.5])

    def test_all_missing(self):
        components = compute_profile_components([None, None], np.array([1.0, 0.0]), neutral=0.4)
        assert components.tolist() == [0.4, 0.4]

    def test_zero_vector_lands_on_neutral(self):
        components = compute_profile_components([np.zeros(2)], np.array([1.0, 0.0]))
        assert components[0] == pytest.approx(0.5)
        assert not np.isnan(components[0])


class TestTagAntiSimilarityAggregator:
    def test_opposite_tags_score_one(self):
        aggregator = TagAntiSimilarityAggregator({"jazz": np.array([0.0, 1.0])})
        assert aggregator.score({"opera": np.array([0.0, -1.0])}) == pytest.approx(1.0)

    def test_mean_over_full_cross_product(self):
        aggregator = TagAntiSimilarityAggregator({
            "hiking": np.array([1.0, 0.0]),
            "jazz": np.array([0.0, 1.0]),
        })
        # hiking x opera is orthogonal (0.5), jazz x opera is opposite (1.0)
        assert aggregator.score({"opera": np.array([0.0, -1.0])}) == pytest.approx(0.75)

    def test_missing_pair_embedding_counts_as_neutral(self):
        """A pair without an embedding keeps its place in the denominator."""
        aggregator = TagAntiSimilarityAggregator({
            "jazz": np.array([0.0, 1.0]),
            "mystery": None,
        })
        scores = aggregator.pair_scores({"opera": np.array([0.0, -1.0])})
        assert scores.shape == (2, 1)
        assert aggregator.score({"opera": np.array([0.0, -1.0])}) == pytest.approx((1.0 + 0.5) / 2)

    def test_empty_requester_tags_is_neutral(self):
        aggregator = TagAntiSimilarityAggregator({})
        assert aggregator.score({"opera": np.array([0.0, -1.0])}) == 0.5

    def test_empty_candidate_tags_is_neutral(self):
        aggregator = TagAntiSimilarityAggregator({"jazz": np.array([0.0, 1.0])})
        assert aggregator.score({}) == 0.5

    def test_no_embeddings_anywhere_is_neutral(self):
        aggregator = TagAntiSimilarityAggregator({"jazz": None})
        assert aggregator.score({"opera": None, "metal": None}) == pytest.approx(0.5)

    def test_batch_helper(self):
        scores = compute_tag_embedding_scores(
            {"jazz": np.array([0.0, 1.0])},
            {"a": {"opera": np.array([0.0, -1.0])}, "b": {}},
        )
        assert scores == {"a": pytest.approx(1.0), "b": 0.5}


class TestTagOverlapEstimator:
    def test_disjoint_tags_score_one(self):
        assert TagOverlapEstimator({"hiking", "jazz"}).score({"opera"}) == 1.0

    def test_fraction_of_candidate_tags(self):
        estimator = TagOverlapEstimator({"hiking", "jazz"})
        assert estimator.score({"hiking", "opera", "chess", "metal"}) == pytest.approx(0.75)

    def test_full_overlap_scores_zero(self):
        assert TagOverlapEstimator({"hiking", "jazz", "opera"}).score({"hiking", "jazz"}) == 0.0

    def test_candidate_without_tags_scores_one(self):
        assert TagOverlapEstimator({"hiking"}).score(set()) == 1.0

    def test_batch_helper(self):
        scores = compute_tag_overlap_scores({"a"}, {"x": {"a", "b"}, "y": set()})
        assert scores == {"x": 0.5, "y": 1.0}
