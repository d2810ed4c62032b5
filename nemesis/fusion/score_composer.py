"""
Score composition for nemesis ranking.

This module combines the three per-candidate signals into one weighted
anti-affinity score.

Composition Formula:
    nemesis_score = w_profile * profile_component
                  + w_tag_embedding * tag_embedding_score
                  + w_tag_overlap * tag_overlap_score

Weights default to 0.5 / 0.3 / 0.2 and must sum to 1.0, which keeps the
score in [0, 1] whenever each component is in [0, 1]. Signals that could
not be computed for a candidate are filled with the neutral value before
composition, so no candidate is dropped for lack of data.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional, Sequence
import json

import numpy as np

from ..constants import NEUTRAL_SCORE, PROFILE_WEIGHT, TAG_EMBEDDING_WEIGHT, TAG_OVERLAP_WEIGHT
from ..schema import CandidateScore

logger = logging.getLogger(__name__)


@dataclass
class ComposerConfig:
    """
    Configuration for score composition.

    Attributes:
        weight_profile: Weight for profile embedding anti-similarity
        weight_tag_embedding: Weight for mean tag-pair anti-similarity
        weight_tag_overlap: Weight for tag overlap anti-affinity
        neutral_score: Fallback for any missing signal
    """
    weight_profile: float = PROFILE_WEIGHT
    weight_tag_embedding: float = TAG_EMBEDDING_WEIGHT
    weight_tag_overlap: float = TAG_OVERLAP_WEIGHT
    neutral_score: float = NEUTRAL_SCORE

    def validate(self) -> None:
        """Validate configuration values."""
        weights = [self.weight_profile, self.weight_tag_embedding, self.weight_tag_overlap]
        for w in weights:
            if not 0 <= w <= 1:
                raise ValueError(f"Weights must be in [0, 1], got {weights}")
        if abs(sum(weights) - 1.0) > 1e-6:
            raise ValueError(f"Weights must sum to 1, got {sum(weights)}")
        if not 0 <= self.neutral_score <= 1:
            raise ValueError(f"neutral_score must be in [0, 1], got {self.neutral_score}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ComposerConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ComposerConfig":
        """Create from main config dictionary."""
        scoring_config = config.get("scoring", {})
        weights = scoring_config.get("weights", {})

        return cls(
            weight_profile=weights.get("profile", PROFILE_WEIGHT),
            weight_tag_embedding=weights.get("tag_embedding", TAG_EMBEDDING_WEIGHT),
            weight_tag_overlap=weights.get("tag_overlap", TAG_OVERLAP_WEIGHT),
            neutral_score=scoring_config.get("neutral_score", NEUTRAL_SCORE)
        )

    def save(self, filepath: str) -> None:
        """Save to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved composer config to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "ComposerConfig":
        """Load from JSON file."""
        with open(filepath, "r") as f:
            d = json.load(f)
        return cls.from_dict(d)


class ScoreComposer:
    """
    Weighted combiner for per-candidate signals.

    Attributes:
        config: ComposerConfig with weights and the neutral value
    """

    def __init__(self, config: Optional[ComposerConfig] = None):
        """
        Initialize the composer.

        Args:
            config: ComposerConfig instance (defaults used when None)
        """
        self.config = config or ComposerConfig()
        self.config.validate()
        logger.debug(
            f"Initialized ScoreComposer with weights="
            f"{self.config.weight_profile}/{self.config.weight_tag_embedding}/{self.config.weight_tag_overlap}"
        )

    def compose(
        self,
        profile_component: np.ndarray,
        tag_embedding_score: np.ndarray,
        tag_overlap_score: np.ndarray
    ) -> np.ndarray:
        """
        Combine signal arrays into nemesis scores.

        NaN entries (signal not produced) are replaced by the neutral value.

        Args:
            profile_component: Profile anti-similarity (N,)
            tag_embedding_score: Tag-pair anti-similarity (N,)
            tag_overlap_score: Tag overlap anti-affinity (N,)

        Returns:
            Nemesis scores clipped to [0, 1] (N,)
        """
        if not len(profile_component) == len(tag_embedding_score) == len(tag_overlap_score):
            raise ValueError(
                f"Signal arrays must have same length: {len(profile_component)}, "
                f"{len(tag_embedding_score)}, {len(tag_overlap_score)}"
            )

        neutral = self.config.neutral_score
        profile = np.nan_to_num(np.asarray(profile_component, dtype=np.float64), nan=neutral)
        tag_embedding = np.nan_to_num(np.asarray(tag_embedding_score, dtype=np.float64), nan=neutral)
        tag_overlap = np.nan_to_num(np.asarray(tag_overlap_score, dtype=np.float64), nan=neutral)

        score = (
            self.config.weight_profile * profile
            + self.config.weight_tag_embedding * tag_embedding
            + self.config.weight_tag_overlap * tag_overlap
        )
        # Absorb floating-point drift at the bounds
        return np.clip(score, 0.0, 1.0)

    def compose_candidates(
        self,
        user_ids: Sequence[str],
        profile_components: np.ndarray,
        tag_embedding_scores: Dict[str, float],
        tag_overlap_scores: Dict[str, float]
    ) -> List[CandidateScore]:
        """
        Join per-candidate signals and compose CandidateScore values.

        Candidates missing from either tag mapping still receive a full
        score through the fallback defaults.

        Args:
            user_ids: Candidate identifiers, aligned with profile_components
            profile_components: Profile anti-similarity per candidate (N,)
            tag_embedding_scores: Candidate id -> tag_embedding_score
            tag_overlap_scores: Candidate id -> tag_overlap_score

        Returns:
            List of CandidateScore in the order of user_ids
        """
        neutral = self.config.neutral_score
        tag_embedding = np.array([tag_embedding_scores.get(uid, neutral) for uid in user_ids], dtype=np.float64)
        # No tag row means no tags, and no tags means nothing overlaps
        tag_overlap = np.array([tag_overlap_scores.get(uid, 1.0) for uid in user_ids], dtype=np.float64)

        scores = self.compose(profile_components, tag_embedding, tag_overlap)

        return [
            CandidateScore(
                user_id=uid,
                score=float(scores[i]),
                profile_component=float(profile_components[i]),
                tag_embedding_score=float(tag_embedding[i]),
                tag_overlap_score=float(tag_overlap[i])
            )
            for i, uid in enumerate(user_ids)
        ]

    def get_effective_weights(self) -> Dict[str, float]:
        """Get composition weights by signal name."""
        return {
            "profile": self.config.weight_profile,
            "tag_embedding": self.config.weight_tag_embedding,
            "tag_overlap": self.config.weight_tag_overlap
        }


def create_composer_from_config(config: Dict[str, Any]) -> ScoreComposer:
    """
    Factory function to create ScoreComposer from config.

    Args:
        config: Main configuration dictionary

    Returns:
        Configured ScoreComposer instance
    """
    return ScoreComposer(ComposerConfig.from_config(config))
