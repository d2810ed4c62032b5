"""Exclusion module: users never eligible for a requester's ranking."""

from .resolver import resolve_exclusions

__all__ = ["resolve_exclusions"]
