"""
Per-candidate anti-similarity signals.

This module computes the three signals that describe how far a candidate
sits from the requester:

- Profile component: anti-similarity of candidate embedding vs reference
- Tag embedding score: mean pairwise anti-similarity over the full cross
  product of requester tags x candidate tags
- Tag overlap score: 1 - |T_c ∩ T_r| / |T_c|

Cosine distance lies in [0, 2] (0 = same direction, 2 = opposite). Halving it
gives anti-similarity in [0, 1] with 1 meaning maximally opposite and 0.5
meaning orthogonal.
Missing embeddings always map to the neutral value, never to zero similarity.
Zero-norm vectors have no direction; scikit-learn treats their similarity
as 0, which also lands on the neutral 0.5.
"""

import logging
from typing import AbstractSet, Dict, List, Mapping, Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_distances

from ..constants import NEUTRAL_SCORE

logger = logging.getLogger(__name__)

TagEmbeddings = Mapping[str, Optional[np.ndarray]]


def anti_similarity(distance: np.ndarray) -> np.ndarray:
    """Map cosine distance in [0, 2] to anti-similarity in [0, 1] (1 = opposite)."""
    return np.asarray(distance) / 2.0


def compute_profile_components(
    candidate_embeddings: Sequence[Optional[np.ndarray]],
    reference_vector: np.ndarray,
    neutral: float = NEUTRAL_SCORE
) -> np.ndarray:
    """
    Compute profile anti-similarity for a batch of candidates.

    Args:
        candidate_embeddings: One embedding (or None) per candidate
        reference_vector: Caller-supplied comparison vector (D,)
        neutral: Value used for candidates without an embedding

    Returns:
        Array of profile components in [0, 1] (N,)
    """
    components = np.full(len(candidate_embeddings), neutral, dtype=np.float64)
    present = [i for i, emb in enumerate(candidate_embeddings) if emb is not None]
    if not present:
        return components

    matrix = np.vstack([candidate_embeddings[i] for i in present])
    distances = cosine_distances(matrix, np.asarray(reference_vector, dtype=np.float64).reshape(1, -1))
    components[present] = anti_similarity(distances.ravel())

    logger.debug(f"Profile components: {len(present)}/{len(candidate_embeddings)} candidates embedded")
    return components


class TagAntiSimilarityAggregator:
    """
    Mean pairwise tag anti-similarity against a fixed requester tag set.

    The requester side is prepared once per request and reused for every
    candidate. Each candidate is scored over the full cross product
    R x C_c; a pair where either tag lacks an embedding contributes the
    neutral value instead of shrinking the denominator.

    Attributes:
        requester_tags: Requester tag names in a fixed order
        neutral: Value substituted for pairs without embeddings
    """

    def __init__(self, requester_tag_embeddings: TagEmbeddings, neutral: float = NEUTRAL_SCORE):
        self.requester_tags: List[str] = sorted(requester_tag_embeddings)
        self.neutral = neutral
        self._present_rows = [
            i for i, name in enumerate(self.requester_tags)
            if requester_tag_embeddings[name] is not None
        ]
        self._requester_matrix = (
            np.vstack([requester_tag_embeddings[self.requester_tags[i]] for i in self._present_rows])
            if self._present_rows else None
        )

    def pair_scores(self, candidate_tag_embeddings: TagEmbeddings) -> np.ndarray:
        """
        Compute the full pair-score matrix for one candidate.

        Args:
            candidate_tag_embeddings: Candidate tag name -> embedding (or None)

        Returns:
            Matrix (|R| x |C_c|) of pair scores in [0, 1]
        """
        candidate_tags = sorted(candidate_tag_embeddings)
        scores = np.full((len(self.requester_tags), len(candidate_tags)), self.neutral, dtype=np.float64)

        present_cols = [
            j for j, name in enumerate(candidate_tags)
            if candidate_tag_embeddings[name] is not None
        ]
        if self._requester_matrix is None or not present_cols:
            return scores

        candidate_matrix = np.vstack([candidate_tag_embeddings[candidate_tags[j]] for j in present_cols])
        distances = cosine_distances(self._requester_matrix, candidate_matrix)
        scores[np.ix_(self._present_rows, present_cols)] = anti_similarity(distances)
        return scores

    def score(self, candidate_tag_embeddings: TagEmbeddings) -> float:
        """
        Compute tag_embedding_score for one candidate.

        An empty requester or candidate tag set yields the neutral value
        (absent aggregate, not a division by zero).
        """
        if not self.requester_tags or not candidate_tag_embeddings:
            return self.neutral
        return float(np.mean(self.pair_scores(candidate_tag_embeddings)))


class TagOverlapEstimator:
    """Fraction of a candidate's tags the requester does not share."""

    def __init__(self, requester_tags: AbstractSet[str]):
        self.requester_tags = frozenset(requester_tags)

    def score(self, candidate_tags: AbstractSet[str]) -> float:
        """
        Compute tag_overlap_score for one candidate.

        A candidate with no tags has overlap_fraction 0 and therefore
        scores 1.0.
        """
        if not candidate_tags:
            return 1.0
        overlap_count = len(self.requester_tags & set(candidate_tags))
        return 1.0 - overlap_count / len(candidate_tags)


def compute_tag_embedding_scores(
    requester_tag_embeddings: TagEmbeddings,
    candidate_tag_embeddings: Mapping[str, TagEmbeddings],
    neutral: float = NEUTRAL_SCORE
) -> Dict[str, float]:
    """
    Compute tag_embedding_score for every candidate.

    Args:
        requester_tag_embeddings: Requester tag name -> embedding (or None)
        candidate_tag_embeddings: Candidate id -> (tag name -> embedding)
        neutral: Neutral fallback value

    Returns:
        Candidate id -> tag_embedding_score
    """
    aggregator = TagAntiSimilarityAggregator(requester_tag_embeddings, neutral=neutral)
    return {
        user_id: aggregator.score(tags)
        for user_id, tags in candidate_tag_embeddings.items()
    }


def compute_tag_overlap_scores(
    requester_tags: AbstractSet[str],
    candidate_tags: Mapping[str, AbstractSet[str]]
) -> Dict[str, float]:
    """
    Compute tag_overlap_score for every candidate.

    Args:
        requester_tags: Requester tag names
        candidate_tags: Candidate id -> tag names

    Returns:
        Candidate id -> tag_overlap_score
    """
    estimator = TagOverlapEstimator(requester_tags)
    return {user_id: estimator.score(tags) for user_id, tags in candidate_tags.items()}
