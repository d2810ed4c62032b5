"""
Exclusion set resolution.

The exclusion set for a requester is:
    {requester} ∪ {targets the requester liked} ∪ {targets the requester disliked}

It gates which users the scoring stages ever consider.
"""

import logging
from typing import FrozenSet

from ..errors import NotFound

logger = logging.getLogger(__name__)


def resolve_exclusions(requester_id: str, profiles, judgments) -> FrozenSet[str]:
    """
    Compute the identifiers to omit from a requester's ranking.

    Args:
        requester_id: Requesting user's identifier
        profiles: Profile store (get_user)
        judgments: Judgment store (liked_by, disliked_by)

    Returns:
        Frozen set of excluded user identifiers, always containing the requester

    Raises:
        NotFound: If the requester does not exist
    """
    if profiles.get_user(requester_id) is None:
        raise NotFound(f"Unknown requester: {requester_id}")

    liked = judgments.liked_by(requester_id)
    disliked = judgments.disliked_by(requester_id)
    excluded = frozenset({requester_id}) | frozenset(liked) | frozenset(disliked)

    logger.debug(
        f"Exclusions for {requester_id}: {len(liked)} liked, "
        f"{len(disliked)} disliked, {len(excluded)} total"
    )
    return excluded
