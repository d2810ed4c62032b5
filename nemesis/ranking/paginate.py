"""
Ranking and offset pagination of composed scores.

Candidates are ordered by score descending, with ties broken by user id
ascending so that adjacent pages never overlap or skip a candidate.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import InvalidArgument
from ..schema import CandidateScore

logger = logging.getLogger(__name__)


def _is_integer(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def validate_window(limit, offset, max_limit: Optional[int] = None) -> None:
    """
    Validate a page window.

    Raises:
        InvalidArgument: If limit is not a positive integer (or exceeds
            max_limit), or offset is not a non-negative integer
    """
    if not _is_integer(limit) or limit < 1:
        raise InvalidArgument(f"limit must be a positive integer, got {limit!r}")
    if max_limit is not None and limit > max_limit:
        raise InvalidArgument(f"limit must not exceed {max_limit}, got {limit}")
    if not _is_integer(offset) or offset < 0:
        raise InvalidArgument(f"offset must be a non-negative integer, got {offset!r}")


def order_candidates(scores: Sequence[CandidateScore]) -> List[CandidateScore]:
    """Return all candidates in rank order (score desc, user id asc)."""
    if not scores:
        return []
    df = pd.DataFrame({
        "user_id": [s.user_id for s in scores],
        "score": [s.score for s in scores],
        "position": np.arange(len(scores)),
    })
    ordered = df.sort_values(["score", "user_id"], ascending=[False, True])
    return [scores[i] for i in ordered["position"].to_numpy()]


def rank_and_paginate(
    scores: Sequence[CandidateScore],
    limit: int,
    offset: int,
    max_limit: Optional[int] = None
) -> Tuple[List[CandidateScore], int]:
    """
    Order candidates and cut out one page.

    Args:
        scores: Composed scores for every eligible candidate
        limit: Maximum page size (positive)
        offset: Number of ranked candidates to skip (non-negative)
        max_limit: Optional upper bound on limit

    Returns:
        Tuple of (page of CandidateScore, total number of candidates).
        The page is empty when offset is at or past the end.
    """
    validate_window(limit, offset, max_limit)

    ordered = order_candidates(scores)
    window = ordered[offset:offset + limit]

    logger.debug(f"Page offset={offset} limit={limit}: {len(window)} of {len(ordered)} candidates")
    return window, len(ordered)
