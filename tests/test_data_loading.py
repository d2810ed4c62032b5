"""Tests for snapshot stores, CSV loaders and synthetic generation."""

from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from nemesis.data_loading import (
    DataSnapshot,
    ProfileStore,
    SyntheticSnapshotGenerator,
    load_snapshot,
    save_snapshot,
)
from nemesis.data_loading.loaders import parse_embedding
from nemesis.schema import User, Tag, UserTag, Judgment, JudgmentKind


class TestParseEmbedding:
    def test_json_array(self):
        assert parse_embedding("[1, 2.5]").tolist() == [1.0, 2.5]

    @pytest.mark.parametrize("cell", [None, "", "  ", float("nan"), "null"])
    def test_empty_cells(self, cell):
        assert parse_embedding(cell) is None

    def test_malformed(self):
        with pytest.raises(ValueError, match="Malformed"):
            parse_embedding("[1, 2")

    @pytest.mark.parametrize("cell", ["[NaN, 1.0]", "[Infinity, 0]", "[0, -Infinity]"])
    def test_non_finite_rejected(self, cell):
        with pytest.raises(ValueError, match="finite"):
            parse_embedding(cell)


class TestStores:
    def test_inconsistent_user_dimensions(self):
        with pytest.raises(ValueError, match="Inconsistent user"):
            ProfileStore([User("a", embedding=[1.0, 0.0]), User("b", embedding=[1.0, 0.0, 0.0])])

    def test_duplicate_user_ids(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ProfileStore([User("a"), User("a")])

    def test_non_finite_user_embedding(self):
        with pytest.raises(ValueError, match="finite"):
            User("a", embedding=[float("nan"), 1.0])

    def test_non_finite_tag_embedding(self):
        with pytest.raises(ValueError, match="finite"):
            Tag("jazz", [float("inf"), 0.0])

    def test_embedding_dim_none_without_embeddings(self):
        assert ProfileStore([User("a")]).embedding_dim is None

    def test_unknown_tag_has_no_embedding(self):
        snapshot = DataSnapshot.from_records([User("a")], tags=[Tag("jazz", [0.0, 1.0])])
        embeddings = snapshot.tags.get_embeddings(["jazz", "unknown"])
        assert embeddings["jazz"].tolist() == [0.0, 1.0]
        assert embeddings["unknown"] is None

    def test_user_tags_and_judgments(self):
        snapshot = DataSnapshot.from_records(
            [User("a"), User("b")],
            user_tags=[UserTag("a", "jazz"), UserTag("a", "jazz"), UserTag("a", "opera")],
            judgments=[Judgment("a", "b", "like"), Judgment("b", "a", JudgmentKind.DISLIKE)],
        )
        assert snapshot.user_tags.tags_for("a") == {"jazz", "opera"}
        assert snapshot.user_tags.tags_for("b") == frozenset()
        assert snapshot.judgments.liked_by("a") == {"b"}
        assert snapshot.judgments.disliked_by("b") == {"a"}
        assert snapshot.judgments.disliked_by("a") == frozenset()


class TestSnapshotFiles:
    def test_save_and_load(self, tmp_path):
        created = datetime(2024, 3, 1, 12, 30)
        records = {
            "users": [
                User("a", username="alice", display_name="Alice", bio="hi",
                     created_at=created, updated_at=created, embedding=[1.0, 0.0]),
                User("b", username="bob"),
            ],
            "tags": [Tag("jazz", [0.0, 1.0]), Tag("opera")],
            "user_tags": [UserTag("a", "jazz"), UserTag("b", "opera")],
            "judgments": [Judgment("a", "b", JudgmentKind.DISLIKE)],
        }
        save_snapshot(records, str(tmp_path))
        snapshot = load_snapshot(str(tmp_path))

        alice = snapshot.profiles.get_user("a")
        assert alice.username == "alice"
        assert alice.bio == "hi"
        assert alice.created_at == created
        assert alice.embedding.tolist() == [1.0, 0.0]
        assert snapshot.profiles.get_user("b").embedding is None
        assert snapshot.profiles.get_user("b").avatar_url is None
        assert snapshot.tags.get_tag("opera").embedding is None
        assert snapshot.user_tags.tags_for("b") == {"opera"}
        assert snapshot.judgments.disliked_by("a") == {"b"}
        assert snapshot.judgments.liked_by("a") == frozenset()

    def test_optional_tables_may_be_missing(self, tmp_path):
        pd.DataFrame({"user_id": ["a", "b"]}).to_csv(tmp_path / "users.csv", index=False)
        snapshot = load_snapshot(str(tmp_path))
        assert len(snapshot.profiles) == 2
        assert len(snapshot.tags) == 0

    def test_non_finite_embedding_cell_fails_load(self, tmp_path):
        pd.DataFrame({"user_id": ["a", "b"], "embedding": ["[1.0, 0.0]", "[NaN, 1.0]"]}).to_csv(
            tmp_path / "users.csv", index=False
        )
        with pytest.raises(ValueError, match="finite"):
            load_snapshot(str(tmp_path))

    def test_non_finite_tag_cell_fails_load(self, tmp_path):
        pd.DataFrame({"user_id": ["a"]}).to_csv(tmp_path / "users.csv", index=False)
        pd.DataFrame({"name": ["jazz"], "embedding": ["[Infinity, 0]"]}).to_csv(
            tmp_path / "tags.csv", index=False
        )
        with pytest.raises(ValueError, match="finite"):
            load_snapshot(str(tmp_path))

    def test_rows_without_user_id_are_dropped(self, tmp_path):
        (tmp_path / "users.csv").write_text("user_id,username\na,alice\n,ghost\nb,bob\n")
        snapshot = load_snapshot(str(tmp_path))
        assert len(snapshot.profiles) == 2
        assert snapshot.profiles.get_user("nan") is None
        assert {u.user_id for u in snapshot.profiles.list_users()} == {"a", "b"}

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(str(tmp_path / "nope"))

    def test_missing_users_table(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(str(tmp_path))

    def test_missing_columns(self, tmp_path):
        pd.DataFrame({"id": ["a"]}).to_csv(tmp_path / "users.csv", index=False)
        with pytest.raises(ValueError, match="missing columns"):
            load_snapshot(str(tmp_path))


class TestSyntheticSnapshotGenerator:
    def test_reproducible(self):
        a = SyntheticSnapshotGenerator(n_users=20, random_seed=3).generate_records()
        b = SyntheticSnapshotGenerator(n_users=20, random_seed=3).generate_records()
        assert a["user_tags"] == b["user_tags"]
        assert a["judgments"] == b["judgments"]

    def test_judgments_never_self_and_unique(self):
        records = SyntheticSnapshotGenerator(n_users=30, judgments_per_user=10, random_seed=1).generate_records()
        pairs = [(j.source_id, j.target_id) for j in records["judgments"]]
        assert all(s != t for s, t in pairs)
        assert len(pairs) == len(set(pairs))

    def test_missing_embeddings_present(self):
        snapshot = SyntheticSnapshotGenerator(n_users=100, missing_embedding_rate=0.5, random_seed=2).generate()
        users = snapshot.profiles.list_users()
        assert any(u.embedding is None for u in users)
        assert any(u.embedding is not None for u in users)
        assert snapshot.profiles.embedding_dim == 16

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            SyntheticSnapshotGenerator(missing_embedding_rate=1.5)
