"""
Nemesis ranking for a requesting user.

This module provides the read-side operation that:
1. Resolves the exclusion set (self, liked, disliked)
2. Reads candidate profiles, tags and tag embeddings from the stores
3. Computes profile, tag-embedding and tag-overlap signals per candidate
4. Composes weighted nemesis scores
5. Orders candidates and returns one offset page

Each call is stateless and read-only, so concurrent calls need no locking
and a failed call can simply be retried by the caller.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, asdict
from typing import Dict, Any, FrozenSet, List, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from ..errors import NemesisError, InvalidArgument, StoreUnavailable, Timeout
from ..exclusion import resolve_exclusions
from ..feature_engineering import (
    compute_profile_components,
    TagAntiSimilarityAggregator,
    TagOverlapEstimator
)
from ..fusion import ScoreComposer, ComposerConfig
from ..schema import User, CandidateScore, ScoredProfile, Page
from .paginate import rank_and_paginate, validate_window

logger = logging.getLogger(__name__)


@dataclass
class RankerConfig:
    """
    Execution settings for the ranker.

    Attributes:
        n_jobs: Worker threads for per-candidate tag scoring (1 = inline, -1 = all cores)
        chunk_size: Candidates per parallel task
        timeout_seconds: Deadline for one call (None disables it)
        max_workers: Threads shared by deadline-bound calls on one ranker
        max_limit: Largest accepted page size (None = unbounded)
    """
    n_jobs: int = 1
    chunk_size: int = 256
    timeout_seconds: Optional[float] = None
    max_workers: int = 4
    max_limit: Optional[int] = None

    def validate(self) -> None:
        """Validate configuration values."""
        if self.n_jobs == 0:
            raise ValueError("n_jobs must not be 0")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.max_limit is not None and self.max_limit < 1:
            raise ValueError(f"max_limit must be positive, got {self.max_limit}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RankerConfig":
        """Create from main config dictionary."""
        engine_config = config.get("engine", {})
        ranking_config = config.get("ranking", {})

        return cls(
            n_jobs=engine_config.get("n_jobs", 1),
            chunk_size=engine_config.get("chunk_size", 256),
            timeout_seconds=engine_config.get("timeout_seconds"),
            max_workers=engine_config.get("max_workers", 4),
            max_limit=ranking_config.get("max_limit")
        )


@dataclass
class RankInputs:
    """Reference data read from the stores for one request."""
    excluded: FrozenSet[str]
    candidates: List[User]
    requester_tags: FrozenSet[str]
    candidate_tags: Dict[str, FrozenSet[str]]
    tag_embeddings: Dict[str, Optional[np.ndarray]]


class NemesisRanker:
    """
    Anti-affinity ranker over read-only stores.

    Attributes:
        profiles: Profile store (get_user, list_users, embedding_dim)
        tags: Tag catalog (get_embeddings)
        user_tags: Association store (tags_for, tags_for_many)
        judgments: Judgment store (liked_by, disliked_by)
        composer: ScoreComposer with weights and neutral value
        config: RankerConfig execution settings

    Calls with a deadline run on a thread pool owned by the ranker and
    created on first use. Call close() (or use the ranker as a context
    manager) to release it.
    """

    def __init__(
        self,
        profiles,
        tags,
        user_tags,
        judgments,
        composer_config: Optional[ComposerConfig] = None,
        config: Optional[RankerConfig] = None
    ):
        self.profiles = profiles
        self.tags = tags
        self.user_tags = user_tags
        self.judgments = judgments
        self.composer = ScoreComposer(composer_config)
        self.config = config or RankerConfig()
        self.config.validate()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @classmethod
    def from_snapshot(cls, snapshot, config: Optional[Dict[str, Any]] = None) -> "NemesisRanker":
        """
        Build a ranker over a DataSnapshot.

        Args:
            snapshot: DataSnapshot bundling the four stores
            config: Optional main configuration dictionary

        Returns:
            NemesisRanker instance
        """
        config = config or {}
        return cls(
            snapshot.profiles,
            snapshot.tags,
            snapshot.user_tags,
            snapshot.judgments,
            composer_config=ComposerConfig.from_config(config),
            config=RankerConfig.from_config(config)
        )

    def __enter__(self) -> "NemesisRanker":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the deadline thread pool without waiting for stuck calls."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)
            logger.debug("Ranker thread pool shut down")

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers, thread_name_prefix="nemesis-rank"
                )
            return self._executor

    @property
    def neutral(self) -> float:
        return self.composer.config.neutral_score

    def rank_nemeses(
        self,
        requester_id: str,
        limit: int,
        offset: int,
        reference_vector,
        return_breakdown: bool = False
    ) -> Page:
        """
        Rank non-excluded candidates by nemesis score and return one page.

        Args:
            requester_id: Requesting user's identifier
            limit: Maximum page size (positive integer)
            offset: Ranked candidates to skip (non-negative integer)
            reference_vector: Vector compared with candidate profile embeddings
            return_breakdown: Whether to attach per-signal components to each item

        Returns:
            Page of ScoredProfile sorted by compatibility_score descending

        Raises:
            InvalidArgument: Bad limit, offset or reference vector
            NotFound: Unknown requester
            StoreUnavailable: A store failed while reading
            Timeout: The deadline elapsed before the ranking completed
        """
        validate_window(limit, offset, self.config.max_limit)
        reference = self._validate_reference(reference_vector)

        if self.config.timeout_seconds is None:
            return self._rank(requester_id, limit, offset, reference, return_breakdown)

        future = self._get_executor().submit(
            self._rank, requester_id, limit, offset, reference, return_breakdown
        )
        try:
            return future.result(timeout=self.config.timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            raise Timeout(
                f"Ranking for {requester_id} exceeded {self.config.timeout_seconds}s"
            ) from None

    def _validate_reference(self, reference_vector) -> np.ndarray:
        """Check the reference vector's shape, values and dimensionality."""
        if reference_vector is None:
            raise InvalidArgument("reference_vector is required")
        try:
            reference = np.asarray(reference_vector, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"reference_vector is not numeric: {e}") from e

        if reference.ndim != 1 or reference.size == 0:
            raise InvalidArgument(f"reference_vector must be a non-empty 1-D vector, got shape {reference.shape}")
        if not np.all(np.isfinite(reference)):
            raise InvalidArgument("reference_vector contains non-finite values")

        expected_dim = getattr(self.profiles, "embedding_dim", None)
        if expected_dim is not None and reference.shape[0] != expected_dim:
            raise InvalidArgument(
                f"reference_vector has dimension {reference.shape[0]}, expected {expected_dim}"
            )
        return reference

    def _rank(
        self,
        requester_id: str,
        limit: int,
        offset: int,
        reference: np.ndarray,
        return_breakdown: bool
    ) -> Page:
        start = time.perf_counter()

        inputs = self._fetch_inputs(requester_id)
        scores = self._score(inputs, reference)
        window, total = rank_and_paginate(scores, limit, offset)

        users_by_id = {user.user_id: user for user in inputs.candidates}
        items = [
            ScoredProfile.from_user(users_by_id[s.user_id], s, include_breakdown=return_breakdown)
            for s in window
        ]

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Ranked {total} candidates for {requester_id} "
            f"({len(inputs.excluded)} excluded), returned {len(items)} in {elapsed_ms:.1f}ms"
        )
        return Page(items=items, limit=limit, offset=offset, total_candidates=total)

    def _fetch_inputs(self, requester_id: str) -> RankInputs:
        """
        Read everything one request needs from the stores.

        Store failures other than engine errors surface as StoreUnavailable.
        """
        try:
            excluded = resolve_exclusions(requester_id, self.profiles, self.judgments)
            candidates = [u for u in self.profiles.list_users() if u.user_id not in excluded]

            requester_tags = frozenset(self.user_tags.tags_for(requester_id))
            candidate_tags = {
                user_id: frozenset(names)
                for user_id, names in self.user_tags.tags_for_many([u.user_id for u in candidates]).items()
            }

            all_tag_names = set(requester_tags)
            for names in candidate_tags.values():
                all_tag_names |= names
            tag_embeddings = dict(self.tags.get_embeddings(sorted(all_tag_names)))
        except NemesisError:
            raise
        except Exception as e:
            logger.error(f"Store read failed for requester {requester_id}: {e}")
            raise StoreUnavailable(f"Failed to read reference data: {e}") from e

        return RankInputs(
            excluded=excluded,
            candidates=candidates,
            requester_tags=requester_tags,
            candidate_tags=candidate_tags,
            tag_embeddings=tag_embeddings
        )

    def _score(self, inputs: RankInputs, reference: np.ndarray) -> List[CandidateScore]:
        """Compute and compose all signals for every candidate."""
        user_ids = [u.user_id for u in inputs.candidates]

        profile_components = compute_profile_components(
            [u.embedding for u in inputs.candidates], reference, neutral=self.neutral
        )

        aggregator = TagAntiSimilarityAggregator(
            {name: inputs.tag_embeddings.get(name) for name in inputs.requester_tags},
            neutral=self.neutral
        )
        estimator = TagOverlapEstimator(inputs.requester_tags)

        if self.config.n_jobs == 1 or len(user_ids) <= self.config.chunk_size:
            tag_embedding_scores, tag_overlap_scores = _score_tag_chunk(
                user_ids, inputs.candidate_tags, inputs.tag_embeddings, aggregator, estimator
            )
        else:
            size = self.config.chunk_size
            chunks = [user_ids[i:i + size] for i in range(0, len(user_ids), size)]
            results = Parallel(n_jobs=self.config.n_jobs, prefer="threads")(
                delayed(_score_tag_chunk)(
                    chunk, inputs.candidate_tags, inputs.tag_embeddings, aggregator, estimator
                )
                for chunk in chunks
            )
            tag_embedding_scores, tag_overlap_scores = {}, {}
            for embedding_part, overlap_part in results:
                tag_embedding_scores.update(embedding_part)
                tag_overlap_scores.update(overlap_part)
            logger.debug(f"Scored {len(user_ids)} candidates in {len(chunks)} parallel chunks")

        return self.composer.compose_candidates(
            user_ids, profile_components, tag_embedding_scores, tag_overlap_scores
        )


def _score_tag_chunk(
    user_ids: List[str],
    candidate_tags: Dict[str, FrozenSet[str]],
    tag_embeddings: Dict[str, Optional[np.ndarray]],
    aggregator: TagAntiSimilarityAggregator,
    estimator: TagOverlapEstimator
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Tag-embedding and tag-overlap scores for a slice of candidates."""
    embedding_scores = {}
    overlap_scores = {}
    for user_id in user_ids:
        names = candidate_tags.get(user_id, frozenset())
        embedding_scores[user_id] = aggregator.score({name: tag_embeddings.get(name) for name in names})
        overlap_scores[user_id] = estimator.score(names)
    return embedding_scores, overlap_scores


def rank_nemeses(
    snapshot,
    requester_id: str,
    limit: int,
    offset: int,
    reference_vector,
    config: Optional[Dict[str, Any]] = None,
    return_breakdown: bool = False
) -> Page:
    """
    Convenience function: build a ranker over a snapshot and rank once.

    Args:
        snapshot: DataSnapshot bundling the four stores
        requester_id: Requesting user's identifier
        limit: Maximum page size
        offset: Ranked candidates to skip
        reference_vector: Vector compared with candidate profile embeddings
        config: Optional main configuration dictionary
        return_breakdown: Whether to attach per-signal components

    Returns:
        Page of ScoredProfile
    """
    with NemesisRanker.from_snapshot(snapshot, config) as ranker:
        return ranker.rank_nemeses(requester_id, limit, offset, reference_vector, return_breakdown)
