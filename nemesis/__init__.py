"""
Nemesis Ranking Engine

This package ranks candidate profiles by an anti-affinity ("nemesis") score:
for a requesting user it finds the users who are most dissimilar across
several weighted signals, skips anyone already liked or disliked, and returns
a paginated, descending-score page.

Key Design Decisions:
- Read-only and stateless per request (no caching across requests)
- Three signals: profile embedding, tag embeddings, tag overlap
- Missing data never drops a candidate; each signal falls back to 0.5
- Deterministic ordering (score desc, user id asc) for stable pagination
"""

from .errors import NemesisError, NotFound, InvalidArgument, StoreUnavailable, Timeout

__version__ = "1.0.0"

__all__ = [
    "NemesisError",
    "NotFound",
    "InvalidArgument",
    "StoreUnavailable",
    "Timeout",
]
