"""
Reference vector helpers for callers of the ranker.

The ranker compares candidate embeddings against whatever vector it is
given; deciding how that vector is derived belongs to the caller. These
helpers cover the two derivations the CLI offers.

The profile signal is the cosine distance to the reference halved, so "own"
puts the most dissimilar profiles first. "negated" inverts the profile
signal: the candidates most similar to the requester rank first.
"""

from typing import Optional

import numpy as np

from ..errors import InvalidArgument
from ..schema import User

REFERENCE_STRATEGIES = ("own", "negated")


def derive_reference_vector(user: Optional[User], strategy: str = "own") -> np.ndarray:
    """
    Derive a reference vector from the requester's profile embedding.

    Args:
        user: Requesting user
        strategy: "own" (the embedding itself) or "negated" (its opposite, which
            ranks the most similar profiles first)

    Returns:
        Reference vector (D,)

    Raises:
        InvalidArgument: If the strategy is unknown or the user has no embedding
    """
    if strategy not in REFERENCE_STRATEGIES:
        raise InvalidArgument(f"Unknown reference strategy: {strategy!r} (expected one of {REFERENCE_STRATEGIES})")
    if user is None or user.embedding is None:
        raise InvalidArgument("Requester has no profile embedding to derive a reference vector from")

    vector = np.array(user.embedding, dtype=np.float64)
    return -vector if strategy == "negated" else vector
