"""Scoring constants that tune nemesis ranking behavior."""

# Substituted for any missing embedding-based signal ("no information")
NEUTRAL_SCORE = 0.5

PROFILE_WEIGHT = 0.5 # Candidate embedding vs reference vector
TAG_EMBEDDING_WEIGHT = 0.3 # Mean pairwise tag anti-similarity
TAG_OVERLAP_WEIGHT = 0.2 # Share of candidate tags the requester lacks
