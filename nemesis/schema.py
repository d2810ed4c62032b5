"""
Data structures for the ranking engine.

Persisted entities (User, Tag, UserTag, Judgment) are owned by other
subsystems and are read-only here. CandidateScore, ScoredProfile and Page
are produced fresh per request and never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

import numpy as np

from .constants import NEUTRAL_SCORE


def as_vector(value: Any) -> Optional[np.ndarray]:
    """
    Coerce an embedding-like value into a 1-D float array.

    Args:
        value: Sequence of numbers, numpy array, or None

    Returns:
        1-D float64 array, or None when the embedding is absent

    Raises:
        ValueError: If the value is not one-dimensional, is empty, or holds
            NaN or infinite components
    """
    if value is None:
        return None
    vector = np.asarray(value, dtype=np.float64)
    if vector.ndim != 1 or vector.size == 0:
        raise ValueError(f"Embedding must be a non-empty 1-D vector, got shape {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise ValueError("Embedding must contain only finite values")
    return vector


class JudgmentKind(Enum):
    """Direction of a prior decision about another user."""
    LIKE = "like"
    DISLIKE = "dislike"


@dataclass
class User:
    """
    A user profile as read from the profile store.

    Attributes:
        user_id: Unique, stable identifier
        username: Public handle
        display_name: Name shown on cards
        avatar_url: Avatar reference
        bio: Free-text biography
        created_at: Creation timestamp
        updated_at: Last update timestamp
        embedding: Optional profile embedding (fixed dimensionality)
    """
    user_id: str
    username: str = ""
    display_name: str = ""
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        self.user_id = str(self.user_id)
        self.embedding = as_vector(self.embedding)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


@dataclass
class Tag:
    """Shared tag reference data with an optional embedding."""
    name: str
    embedding: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        self.embedding = as_vector(self.embedding)


@dataclass(frozen=True)
class UserTag:
    """Association between a user and a tag name."""
    user_id: str
    tag_name: str


@dataclass(frozen=True)
class Judgment:
    """A directed like/dislike from source to target."""
    source_id: str
    target_id: str
    kind: JudgmentKind

    def __post_init__(self):
        if isinstance(self.kind, str):
            object.__setattr__(self, "kind", JudgmentKind(self.kind))


@dataclass(frozen=True)
class CandidateScore:
    """
    Composed nemesis score for one candidate within one request.

    Attributes:
        user_id: Candidate identifier
        score: Weighted composite in [0, 1]
        profile_component: Profile embedding anti-similarity in [0, 1]
        tag_embedding_score: Mean pairwise tag anti-similarity in [0, 1]
        tag_overlap_score: 1 - share of candidate tags shared with requester
    """
    user_id: str
    score: float
    profile_component: float = NEUTRAL_SCORE
    tag_embedding_score: float = NEUTRAL_SCORE
    tag_overlap_score: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "score": self.score,
            "profile_component": self.profile_component,
            "tag_embedding_score": self.tag_embedding_score,
            "tag_overlap_score": self.tag_overlap_score
        }


@dataclass
class ScoredProfile:
    """
    Public profile fields plus the nemesis score.

    compatibility_score is never null; it defaults to the neutral value
    when no score was computed upstream.
    """
    user_id: str
    username: str = ""
    display_name: str = ""
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    compatibility_score: float = NEUTRAL_SCORE
    breakdown: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.compatibility_score is None:
            self.compatibility_score = NEUTRAL_SCORE

    @classmethod
    def from_user(
        cls,
        user: User,
        candidate_score: Optional[CandidateScore] = None,
        include_breakdown: bool = False
    ) -> "ScoredProfile":
        """
        Build a scored profile from a stored user and its score.

        Args:
            user: Candidate user
            candidate_score: Composed score (None falls back to neutral)
            include_breakdown: Whether to attach per-signal components

        Returns:
            ScoredProfile instance
        """
        breakdown = None
        if include_breakdown and candidate_score is not None:
            breakdown = {
                "profile_component": candidate_score.profile_component,
                "tag_embedding_score": candidate_score.tag_embedding_score,
                "tag_overlap_score": candidate_score.tag_overlap_score
            }

        return cls(
            user_id=user.user_id,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            bio=user.bio,
            created_at=user.created_at,
            updated_at=user.updated_at,
            compatibility_score=candidate_score.score if candidate_score else NEUTRAL_SCORE,
            breakdown=breakdown
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        result = {
            "user_id": self.user_id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "bio": self.bio,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "compatibility_score": float(self.compatibility_score)
        }
        if self.breakdown:
            result["breakdown"] = self.breakdown
        return result


@dataclass
class Page:
    """One offset window of the ranked candidate list."""
    items: List[ScoredProfile]
    limit: int
    offset: int
    total_candidates: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total_candidates

    @property
    def user_ids(self) -> List[str]:
        return [item.user_id for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "items": [item.to_dict() for item in self.items],
            "limit": self.limit,
            "offset": self.offset,
            "total_candidates": self.total_candidates,
            "has_more": self.has_more
        }
