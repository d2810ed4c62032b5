"""
Synthetic snapshot generation.

Used by the CLI and the smoke script when no exported snapshot is available,
mirroring the way the ranking engine will see production data:
- Some users and tags have no embedding (missing_embedding_rate)
- Some users have no tags at all
- Judgments are directed, never self-referencing, and unique per (source, target)
- Reproducible given a random seed
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional

import numpy as np

from ..schema import User, Tag, UserTag, Judgment, JudgmentKind
from .stores import DataSnapshot

logger = logging.getLogger(__name__)

TAG_VOCABULARY = [
    "hiking", "jazz", "opera", "chess", "surfing", "anime", "baking", "crossfit",
    "poetry", "metal", "gardening", "esports", "knitting", "skydiving", "astronomy",
    "karaoke", "birdwatching", "parkour", "sudoku", "theatre",
]


class SyntheticSnapshotGenerator:
    """
    Generator for random users, tags, associations and judgments.

    Attributes:
        n_users: Number of users to generate
        n_tags: Number of tags in the catalog
        dim: Embedding dimensionality (shared by users and tags)
        tags_per_user: Mean number of tags per user (Poisson)
        judgments_per_user: Mean number of likes+dislikes per user (Poisson)
        missing_embedding_rate: Probability that an embedding is absent
        random_state: Numpy RandomState for reproducibility
    """

    def __init__(
        self,
        n_users: int = 200,
        n_tags: int = 40,
        dim: int = 16,
        tags_per_user: int = 5,
        judgments_per_user: int = 4,
        missing_embedding_rate: float = 0.15,
        random_seed: Optional[int] = None
    ):
        if n_users < 1 or n_tags < 1 or dim < 1:
            raise ValueError("n_users, n_tags and dim must be positive")
        if not 0 <= missing_embedding_rate <= 1:
            raise ValueError(f"missing_embedding_rate must be in [0, 1], got {missing_embedding_rate}")

        self.n_users = n_users
        self.n_tags = n_tags
        self.dim = dim
        self.tags_per_user = tags_per_user
        self.judgments_per_user = judgments_per_user
        self.missing_embedding_rate = missing_embedding_rate
        self.random_state = np.random.RandomState(random_seed)

    def _maybe_embedding(self) -> Optional[np.ndarray]:
        if self.random_state.rand() < self.missing_embedding_rate:
            return None
        return self.random_state.normal(size=self.dim)

    def _tag_names(self) -> List[str]:
        names = []
        for i in range(self.n_tags):
            base = TAG_VOCABULARY[i % len(TAG_VOCABULARY)]
            suffix = i // len(TAG_VOCABULARY)
            names.append(base if suffix == 0 else f"{base}_{suffix}")
        return names

    def generate_records(self) -> Dict[str, List[Any]]:
        """
        Generate all snapshot records.

        Returns:
            Dict with keys users, tags, user_tags, judgments
        """
        epoch = datetime(2024, 1, 1)

        users = []
        for i in range(self.n_users):
            created = epoch + timedelta(hours=int(self.random_state.randint(0, 24 * 365)))
            users.append(User(
                user_id=f"user_{i:04d}",
                username=f"user{i}",
                display_name=f"User {i}",
                avatar_url=f"avatars/user_{i:04d}.png",
                bio=None,
                created_at=created,
                updated_at=created,
                embedding=self._maybe_embedding()
            ))

        tags = [Tag(name=name, embedding=self._maybe_embedding()) for name in self._tag_names()]

        user_tags = []
        for user in users:
            k = min(int(self.random_state.poisson(self.tags_per_user)), self.n_tags)
            chosen = self.random_state.choice(self.n_tags, size=k, replace=False)
            user_tags.extend(UserTag(user_id=user.user_id, tag_name=tags[j].name) for j in chosen)

        judgments = []
        if self.n_users > 1:
            for i, user in enumerate(users):
                k = min(int(self.random_state.poisson(self.judgments_per_user)), self.n_users - 1)
                # Exclude self by sampling from the other n-1 positions
                others = self.random_state.choice(self.n_users - 1, size=k, replace=False)
                for j in others:
                    target = users[j if j < i else j + 1]
                    kind = JudgmentKind.LIKE if self.random_state.rand() < 0.5 else JudgmentKind.DISLIKE
                    judgments.append(Judgment(source_id=user.user_id, target_id=target.user_id, kind=kind))

        logger.info(
            f"Generated synthetic snapshot: {len(users)} users, {len(tags)} tags, "
            f"{len(user_tags)} associations, {len(judgments)} judgments"
        )
        return {"users": users, "tags": tags, "user_tags": user_tags, "judgments": judgments}

    def generate(self) -> DataSnapshot:
        """Generate records and wrap them in in-memory stores."""
        records = self.generate_records()
        return DataSnapshot.from_records(
            records["users"], records["tags"], records["user_tags"], records["judgments"]
        )


def create_synthetic_snapshot(config: dict, random_seed: int) -> DataSnapshot:
    """
    Convenience function to build a synthetic snapshot from config.

    Args:
        config: Configuration dictionary with synthetic settings
        random_seed: Random seed for reproducibility

    Returns:
        DataSnapshot instance
    """
    synthetic_config = config.get("synthetic", {})

    generator = SyntheticSnapshotGenerator(
        n_users=synthetic_config.get("n_users", 200),
        n_tags=synthetic_config.get("n_tags", 40),
        dim=synthetic_config.get("dim", 16),
        tags_per_user=synthetic_config.get("tags_per_user", 5),
        judgments_per_user=synthetic_config.get("judgments_per_user", 4),
        missing_embedding_rate=synthetic_config.get("missing_embedding_rate", 0.15),
        random_seed=random_seed
    )
    return generator.generate()
