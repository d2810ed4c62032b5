"""
Ranking module for nemesis scoring.

This module provides the read-side operation that ranks candidates for a
requesting user and returns one page of scored profiles.
"""

from .ranker import NemesisRanker, RankerConfig, rank_nemeses
from .paginate import rank_and_paginate, order_candidates, validate_window
from .reference import derive_reference_vector, REFERENCE_STRATEGIES

__all__ = [
    "NemesisRanker",
    "RankerConfig",
    "rank_nemeses",
    "rank_and_paginate",
    "order_candidates",
    "validate_window",
    "derive_reference_vector",
    "REFERENCE_STRATEGIES",
]
