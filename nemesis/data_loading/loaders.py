"""
Snapshot loading functions for the ranking engine.

This module reads a directory of CSV exports (users, tags, associations,
likes, dislikes) into in-memory read-only stores. Embeddings are stored as
JSON arrays in a single column; an empty cell means "no embedding".
No scoring is done here - that's handled by the ranking module.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional

import numpy as np
import pandas as pd

from ..schema import User, Tag, UserTag, Judgment, JudgmentKind, as_vector
from .stores import DataSnapshot

logger = logging.getLogger(__name__)

DEFAULT_FILES = {
    "users": "users.csv",
    "tags": "tags.csv",
    "user_tags": "user_tags.csv",
    "likes": "likes.csv",
    "dislikes": "dislikes.csv",
}

USER_COLUMNS = ["user_id", "username", "display_name", "avatar_url", "bio",
                "created_at", "updated_at", "embedding"]


def parse_embedding(value: Any) -> Optional[np.ndarray]:
    """
    Parse an embedding cell.

    Args:
        value: JSON array string, list, or an empty/NaN cell

    Returns:
        1-D float array or None when the cell is empty

    Raises:
        ValueError: If the cell is not a JSON array of finite numbers
    """
    if value is None:
        return None
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed embedding cell: {value[:40]!r}") from e
    if value is None:
        return None
    return as_vector(value)


def _optional(value: Any) -> Optional[Any]:
    return None if pd.isna(value) else value


def _optional_timestamp(value: Any):
    if pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


def _read_table(filepath: Path, required_columns: List[str], allow_missing: bool = False) -> pd.DataFrame:
    """
    Read one CSV table and check its columns.

    Raises:
        FileNotFoundError: If the file doesn't exist and allow_missing is False
        ValueError: If required columns are missing
    """
    if not filepath.exists():
        if allow_missing:
            logger.info(f"Optional table {filepath.name} not found, treating as empty")
            return pd.DataFrame(columns=required_columns)
        raise FileNotFoundError(f"Snapshot table not found: {filepath}")

    df = pd.read_csv(filepath, dtype=str, keep_default_na=True)
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValueError(f"{filepath.name} is missing columns: {missing}")

    logger.info(f"Loaded {len(df)} rows from {filepath.name}")
    return df


def load_users(filepath: str) -> List[User]:
    """
    Load user profiles from CSV.

    Only user_id is required; display attributes and the embedding column
    are optional.

    Args:
        filepath: Path to users CSV

    Returns:
        List of User records

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty
    """
    df = _read_table(Path(filepath), ["user_id"])
    n_rows = len(df)
    df = df.dropna(subset=["user_id"])
    if len(df) < n_rows:
        logger.warning(f"Dropped {n_rows - len(df)} user rows without a user_id")
    if df.empty:
        raise ValueError(f"Users file is empty: {filepath}")

    for column in USER_COLUMNS:
        if column not in df.columns:
            df[column] = None

    users = []
    for row in df.itertuples(index=False):
        users.append(User(
            user_id=row.user_id,
            username=_optional(row.username) or "",
            display_name=_optional(row.display_name) or "",
            avatar_url=_optional(row.avatar_url),
            bio=_optional(row.bio),
            created_at=_optional_timestamp(row.created_at),
            updated_at=_optional_timestamp(row.updated_at),
            embedding=parse_embedding(row.embedding)
        ))

    n_embedded = sum(1 for u in users if u.has_embedding)
    logger.info(f"Parsed {len(users)} users ({n_embedded} with embeddings)")
    return users


def load_tags(filepath: str, allow_missing: bool = True) -> List[Tag]:
    """Load tag names and optional embeddings from CSV."""
    df = _read_table(Path(filepath), ["name"], allow_missing=allow_missing)
    if "embedding" not in df.columns:
        df["embedding"] = None
    return [Tag(name=row.name, embedding=parse_embedding(row.embedding))
            for row in df.itertuples(index=False)]


def load_user_tags(filepath: str, allow_missing: bool = True) -> List[UserTag]:
    """Load user/tag associations from CSV."""
    df = _read_table(Path(filepath), ["user_id", "tag_name"], allow_missing=allow_missing)
    df = df.dropna(subset=["user_id", "tag_name"])
    return [UserTag(user_id=row.user_id, tag_name=row.tag_name)
            for row in df.itertuples(index=False)]


def load_judgments(filepath: str, kind: JudgmentKind, allow_missing: bool = True) -> List[Judgment]:
    """Load likes or dislikes from CSV (source_id, target_id)."""
    df = _read_table(Path(filepath), ["source_id", "target_id"], allow_missing=allow_missing)
    df = df.dropna(subset=["source_id", "target_id"])
    return [Judgment(source_id=row.source_id, target_id=row.target_id, kind=kind)
            for row in df.itertuples(index=False)]


def load_snapshot(directory: str, files: Optional[Dict[str, str]] = None) -> DataSnapshot:
    """
    Load a full snapshot directory into read-only stores.

    Args:
        directory: Directory holding the snapshot CSV files
        files: Optional overrides for table file names (see DEFAULT_FILES)

    Returns:
        DataSnapshot with all four stores

    Raises:
        FileNotFoundError: If the directory or the users table is missing
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Snapshot directory not found: {directory}")

    names = dict(DEFAULT_FILES)
    names.update(files or {})

    logger.info(f"Loading snapshot from {directory}")
    users = load_users(str(root / names["users"]))
    tags = load_tags(str(root / names["tags"]))
    user_tags = load_user_tags(str(root / names["user_tags"]))
    judgments = (
        load_judgments(str(root / names["likes"]), JudgmentKind.LIKE)
        + load_judgments(str(root / names["dislikes"]), JudgmentKind.DISLIKE)
    )

    return DataSnapshot.from_records(users, tags, user_tags, judgments)


def save_snapshot(snapshot_records: Dict[str, List[Any]], directory: str) -> None:
    """
    Write snapshot records to CSV files in the layout load_snapshot expects.

    Args:
        snapshot_records: Dict with keys users, tags, user_tags, judgments
        directory: Output directory (created if needed)
    """
    root = Path(directory)
    root.mkdir(parents=True, exist_ok=True)

    def _embedding_cell(vector):
        return json.dumps([float(x) for x in vector]) if vector is not None else ""

    pd.DataFrame([{
        "user_id": u.user_id,
        "username": u.username,
        "display_name": u.display_name,
        "avatar_url": u.avatar_url,
        "bio": u.bio,
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "updated_at": u.updated_at.isoformat() if u.updated_at else None,
        "embedding": _embedding_cell(u.embedding),
    } for u in snapshot_records["users"]], columns=USER_COLUMNS).to_csv(
        root / DEFAULT_FILES["users"], index=False
    )

    pd.DataFrame(
        [{"name": t.name, "embedding": _embedding_cell(t.embedding)} for t in snapshot_records.get("tags", [])],
        columns=["name", "embedding"]
    ).to_csv(root / DEFAULT_FILES["tags"], index=False)

    pd.DataFrame(
        [{"user_id": a.user_id, "tag_name": a.tag_name} for a in snapshot_records.get("user_tags", [])],
        columns=["user_id", "tag_name"]
    ).to_csv(root / DEFAULT_FILES["user_tags"], index=False)

    judgments = snapshot_records.get("judgments", [])
    for kind, key in [(JudgmentKind.LIKE, "likes"), (JudgmentKind.DISLIKE, "dislikes")]:
        pd.DataFrame(
            [{"source_id": j.source_id, "target_id": j.target_id} for j in judgments if j.kind is kind],
            columns=["source_id", "target_id"]
        ).to_csv(root / DEFAULT_FILES[key], index=False)

    logger.info(f"Saved snapshot to {directory}")
