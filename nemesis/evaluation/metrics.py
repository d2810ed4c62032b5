"""
Evaluation metrics for nemesis rankings.

Since there are NO true labels for "nemesis-ness", evaluation focuses on:
1. Score distribution analysis
2. Page invariants (score range, exclusions, global ordering, duplicates)
3. Ranking agreement between runs or reference-vector strategies

This module DOES NOT claim that a high score predicts real-world dislike.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence, AbstractSet
import json

import numpy as np
from scipy.stats import spearmanr

from ..schema import Page

logger = logging.getLogger(__name__)


@dataclass
class ScoreDistributionStats:
    """Statistics about score distribution."""
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


@dataclass
class PageInvariantCheck:
    """Results of checking a sequence of adjacent pages."""
    n_items: int
    out_of_range: List[str] = field(default_factory=list)
    excluded_present: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    order_violations: int = 0

    @property
    def passed(self) -> bool:
        return not (self.out_of_range or self.excluded_present or self.duplicates or self.order_violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_items": int(self.n_items),
            "passed": bool(self.passed),
            "out_of_range": list(self.out_of_range),
            "excluded_present": list(self.excluded_present),
            "duplicates": list(self.duplicates),
            "order_violations": int(self.order_violations)
        }


@dataclass
class RankingAgreement:
    """Agreement between two rankings over their shared candidates."""
    n_shared: int
    spearman: float
    top_k_jaccard: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_shared": int(self.n_shared),
            "spearman": float(self.spearman),
            "top_k_jaccard": float(self.top_k_jaccard)
        }


@dataclass
class EvaluationReport:
    """
    Evaluation report for one requester's ranking.

    Contains distribution statistics, page invariants and optional
    agreement checks.
    """
    requester_id: str
    distribution_stats: ScoreDistributionStats
    page_check: Optional[PageInvariantCheck] = None
    agreement: Optional[RankingAgreement] = None
    additional_metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "requester_id": self.requester_id,
            "distribution_stats": self.distribution_stats.to_dict(),
            "additional_metrics": self.additional_metrics
        }
        if self.page_check:
            result["page_check"] = self.page_check.to_dict()
        if self.agreement:
            result["agreement"] = self.agreement.to_dict()
        return result

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved evaluation report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            f"Evaluation Report: {self.requester_id}",
            "=" * 50,
            "",
            "Score Distribution:",
            f"  Mean: {self.distribution_stats.mean:.4f}",
            f"  Std:  {self.distribution_stats.std:.4f}",
            f"  Min:  {self.distribution_stats.min:.4f}",
            f"  Max:  {self.distribution_stats.max:.4f}",
        ]

        for q_name, q_value in self.distribution_stats.quantiles.items():
            lines.append(f"  {q_name}: {q_value:.4f}")

        if self.page_check:
            lines.extend([
                "",
                f"Page Invariants ({self.page_check.n_items} items):",
                f"  Passed: {self.page_check.passed}",
                f"  Order violations: {self.page_check.order_violations}",
            ])

        if self.agreement:
            lines.extend([
                "",
                f"Ranking Agreement ({self.agreement.n_shared} shared):",
                f"  Spearman: {self.agreement.spearman:.4f}",
                f"  Top-k Jaccard: {self.agreement.top_k_jaccard:.4f}",
            ])

        return "\n".join(lines)


def compute_score_distribution_stats(
    scores: np.ndarray,
    quantiles: Sequence[float] = (0.1, 0.25, 0.5, 0.75, 0.9)
) -> ScoreDistributionStats:
    """
    Compute distribution statistics for scores.

    Args:
        scores: Array of nemesis scores
        quantiles: Quantile values to compute (default: p10, p25, p50, p75, p90)

    Returns:
        ScoreDistributionStats instance (all zeros for an empty array)
    """
    scores = np.asarray(scores, dtype=np.float64)
    if scores.size == 0:
        return ScoreDistributionStats(0.0, 0.0, 0.0, 0.0, {f"p{int(q * 100)}": 0.0 for q in quantiles})

    quantile_dict = {
        f"p{int(q * 100)}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }

    return ScoreDistributionStats(
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


def check_page_invariants(pages: Sequence[Page], excluded: AbstractSet[str] = frozenset()) -> PageInvariantCheck:
    """
    Check adjacent pages for range, exclusion, ordering and duplicates.

    Pages must be given in offset order; ordering is checked across page
    boundaries, not just within each page.

    Args:
        pages: Pages from consecutive offsets
        excluded: Identifiers that must never appear

    Returns:
        PageInvariantCheck instance
    """
    items = [item for page in pages for item in page.items]
    check = PageInvariantCheck(n_items=len(items))

    seen = set()
    for item in items:
        if not 0.0 <= item.compatibility_score <= 1.0:
            check.out_of_range.append(item.user_id)
        if item.user_id in excluded:
            check.excluded_present.append(item.user_id)
        if item.user_id in seen:
            check.duplicates.append(item.user_id)
        seen.add(item.user_id)

    for prev, curr in zip(items, items[1:]):
        if curr.compatibility_score > prev.compatibility_score:
            check.order_violations += 1
        elif curr.compatibility_score == prev.compatibility_score and curr.user_id < prev.user_id:
            check.order_violations += 1

    if not check.passed:
        logger.warning(f"Page invariants violated: {check.to_dict()}")
    return check


def compare_rankings(
    ranking_a: Sequence[str],
    ranking_b: Sequence[str],
    top_k: int = 10
) -> RankingAgreement:
    """
    Compare two rankings of user ids.

    Args:
        ranking_a: User ids in rank order
        ranking_b: User ids in rank order
        top_k: Number of leading ids for Jaccard overlap

    Returns:
        RankingAgreement instance (spearman is 1.0 for fewer than 2 shared ids)
    """
    position_b = {user_id: i for i, user_id in enumerate(ranking_b)}
    shared = [user_id for user_id in ranking_a if user_id in position_b]

    if len(shared) > 1:
        ranks_a = list(range(len(shared)))
        ranks_b = [position_b[user_id] for user_id in shared]
        spearman, _ = spearmanr(ranks_a, ranks_b)
        spearman = float(spearman)
    else:
        spearman = 1.0

    top_a = set(ranking_a[:top_k])
    top_b = set(ranking_b[:top_k])
    union = len(top_a | top_b)
    jaccard = len(top_a & top_b) / union if union > 0 else 1.0

    return RankingAgreement(n_shared=len(shared), spearman=spearman, top_k_jaccard=jaccard)
