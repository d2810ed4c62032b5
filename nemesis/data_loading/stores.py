"""
Read-only collaborator stores consumed by the ranking engine.

Each store exposes lookup/query methods only. The in-memory classes here back
the CLI and tests; any object offering the same methods (for example one
wrapping a database connection) can be passed to the ranker instead.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

import numpy as np

from ..schema import User, Tag, UserTag, Judgment, JudgmentKind

logger = logging.getLogger(__name__)


def _common_dimension(vectors: Iterable[Optional[np.ndarray]], label: str) -> Optional[int]:
    """Return the shared embedding dimension, or None if no vector is present."""
    dims = {v.shape[0] for v in vectors if v is not None}
    if len(dims) > 1:
        raise ValueError(f"Inconsistent {label} embedding dimensions: {sorted(dims)}")
    return dims.pop() if dims else None


class ProfileStore:
    """Users keyed by identifier."""

    def __init__(self, users: Iterable[User]):
        self._users: Dict[str, User] = {}
        for user in users:
            if user.user_id in self._users:
                raise ValueError(f"Duplicate user id: {user.user_id}")
            self._users[user.user_id] = user
        self.embedding_dim = _common_dimension(
            (u.embedding for u in self._users.values()), "user"
        )
        logger.debug(f"ProfileStore holds {len(self._users)} users (dim={self.embedding_dim})")

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def list_users(self) -> List[User]:
        return list(self._users.values())

    def __len__(self) -> int:
        return len(self._users)


class TagCatalog:
    """Tag reference data keyed by name."""

    def __init__(self, tags: Iterable[Tag]):
        self._tags: Dict[str, Tag] = {tag.name: tag for tag in tags}
        self.embedding_dim = _common_dimension(
            (t.embedding for t in self._tags.values()), "tag"
        )

    def get_tag(self, name: str) -> Optional[Tag]:
        return self._tags.get(name)

    def get_embeddings(self, names: Iterable[str]) -> Dict[str, Optional[np.ndarray]]:
        """
        Look up embeddings for tag names.

        Unknown tags and tags without an embedding both map to None.
        """
        result = {}
        for name in names:
            tag = self._tags.get(name)
            result[name] = tag.embedding if tag is not None else None
        return result

    def __len__(self) -> int:
        return len(self._tags)


class UserTagStore:
    """Many-to-many user/tag associations."""

    def __init__(self, associations: Iterable[UserTag]):
        by_user: Dict[str, Set[str]] = defaultdict(set)
        for assoc in associations:
            by_user[assoc.user_id].add(assoc.tag_name)
        self._by_user = {user_id: frozenset(names) for user_id, names in by_user.items()}

    def tags_for(self, user_id: str) -> FrozenSet[str]:
        return self._by_user.get(user_id, frozenset())

    def tags_for_many(self, user_ids: Iterable[str]) -> Dict[str, FrozenSet[str]]:
        return {user_id: self.tags_for(user_id) for user_id in user_ids}


class JudgmentStore:
    """Prior likes and dislikes, indexed by source user."""

    def __init__(self, judgments: Iterable[Judgment]):
        self._liked: Dict[str, Set[str]] = defaultdict(set)
        self._disliked: Dict[str, Set[str]] = defaultdict(set)
        for judgment in judgments:
            if judgment.kind is JudgmentKind.LIKE:
                self._liked[judgment.source_id].add(judgment.target_id)
            else:
                self._disliked[judgment.source_id].add(judgment.target_id)

    def liked_by(self, user_id: str) -> FrozenSet[str]:
        return frozenset(self._liked.get(user_id, ()))

    def disliked_by(self, user_id: str) -> FrozenSet[str]:
        return frozenset(self._disliked.get(user_id, ()))


@dataclass
class DataSnapshot:
    """The four read-only collaborators the ranker consumes."""
    profiles: ProfileStore
    tags: TagCatalog
    user_tags: UserTagStore
    judgments: JudgmentStore

    @classmethod
    def from_records(
        cls,
        users: Iterable[User],
        tags: Iterable[Tag] = (),
        user_tags: Iterable[UserTag] = (),
        judgments: Iterable[Judgment] = ()
    ) -> "DataSnapshot":
        """Build in-memory stores from plain records."""
        return cls(
            profiles=ProfileStore(users),
            tags=TagCatalog(tags),
            user_tags=UserTagStore(user_tags),
            judgments=JudgmentStore(judgments)
        )
