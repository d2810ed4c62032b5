"""Data loading module for read-only snapshot stores."""

from .stores import ProfileStore, TagCatalog, UserTagStore, JudgmentStore, DataSnapshot
from .loaders import load_snapshot, save_snapshot
from .synthetic import SyntheticSnapshotGenerator, create_synthetic_snapshot

__all__ = [
    "ProfileStore",
    "TagCatalog",
    "UserTagStore",
    "JudgmentStore",
    "DataSnapshot",
    "load_snapshot",
    "save_snapshot",
    "SyntheticSnapshotGenerator",
    "create_synthetic_snapshot",
]
