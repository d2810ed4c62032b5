"""Evaluation module for nemesis ranking analysis."""

from .metrics import (
    compute_score_distribution_stats,
    check_page_invariants,
    compare_rankings,
    EvaluationReport
)

__all__ = [
    "compute_score_distribution_stats",
    "check_page_invariants",
    "compare_rankings",
    "EvaluationReport"
]
