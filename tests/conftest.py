"""Shared fixtures for the nemesis test suite."""

import numpy as np
import pytest

from nemesis.data_loading import DataSnapshot, SyntheticSnapshotGenerator
from nemesis.schema import User, Tag, UserTag, Judgment, JudgmentKind


@pytest.fixture
def build_snapshot():
    """
    Factory for small in-memory snapshots.

    users: {user_id: embedding or None}
    tags: {tag_name: embedding or None}
    user_tags: {user_id: [tag names]}
    likes/dislikes: [(source, target)]
    """
    def _build(users, tags=None, user_tags=None, likes=(), dislikes=()):
        return DataSnapshot.from_records(
            users=[User(user_id=uid, username=uid, display_name=uid.title(), embedding=emb)
                   for uid, emb in users.items()],
            tags=[Tag(name=name, embedding=emb) for name, emb in (tags or {}).items()],
            user_tags=[UserTag(user_id=uid, tag_name=name)
                       for uid, names in (user_tags or {}).items() for name in names],
            judgments=[Judgment(s, t, JudgmentKind.LIKE) for s, t in likes]
                      + [Judgment(s, t, JudgmentKind.DISLIKE) for s, t in dislikes]
        )
    return _build


@pytest.fixture
def scenario_snapshot(build_snapshot):
    """Requester with hiking/jazz tags and one untagged-embedding candidate with opera."""
    return build_snapshot(
        users={"r": [1.0, 0.0], "c": None},
        tags={"hiking": [1.0, 0.0], "jazz": [0.0, 1.0], "opera": [0.0, -1.0]},
        user_tags={"r": ["hiking", "jazz"], "c": ["opera"]},
    )


@pytest.fixture
def synthetic_snapshot():
    return SyntheticSnapshotGenerator(
        n_users=60, n_tags=15, dim=8, tags_per_user=4,
        judgments_per_user=5, missing_embedding_rate=0.2, random_seed=7
    ).generate()


@pytest.fixture
def first_embedded_user(synthetic_snapshot):
    return next(u for u in synthetic_snapshot.profiles.list_users() if u.has_embedding)


@pytest.fixture
def unit_reference():
    return np.array([1.0, 0.0])
