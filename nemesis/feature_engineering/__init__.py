"""Feature engineering module for per-candidate anti-similarity signals."""

from .tag_features import (
    anti_similarity,
    compute_profile_components,
    compute_tag_embedding_scores,
    compute_tag_overlap_scores,
    TagAntiSimilarityAggregator,
    TagOverlapEstimator
)

__all__ = [
    "anti_similarity",
    "compute_profile_components",
    "compute_tag_embedding_scores",
    "compute_tag_overlap_scores",
    "TagAntiSimilarityAggregator",
    "TagOverlapEstimator"
]
