"""Tests for ranking evaluation helpers."""

import json

import numpy as np
import pytest

from nemesis.evaluation import (
    compute_score_distribution_stats,
    check_page_invariants,
    compare_rankings,
    EvaluationReport,
)
from nemesis.schema import Page, ScoredProfile


def _page(*items, offset=0, total=None):
    profiles = [ScoredProfile(user_id=uid, compatibility_score=score) for uid, score in items]
    return Page(items=profiles, limit=len(profiles) or 1, offset=offset,
                total_candidates=total if total is not None else len(profiles))


class TestCheckPageInvariants:
    def test_clean_pages(self):
        pages = [_page(("a", 0.9), ("b", 0.7)), _page(("c", 0.7), ("d", 0.1), offset=2)]
        assert check_page_invariants(pages, excluded={"z"}).passed

    def test_order_violation_across_boundary(self):
        pages = [_page(("a", 0.5)), _page(("b", 0.8), offset=1)]
        assert check_page_invariants(pages).order_violations == 1

    def test_tie_order_violation(self):
        assert check_page_invariants([_page(("b", 0.5), ("a", 0.5))]).order_violations == 1

    def test_excluded_and_duplicates(self):
        check = check_page_invariants([_page(("a", 0.9), ("a", 0.9), ("r", 0.2))], excluded={"r"})
        assert check.excluded_present == ["r"]
        assert check.duplicates == ["a"]
        assert not check.passed

    def test_null_score_defaults_to_neutral(self):
        assert ScoredProfile(user_id="a", compatibility_score=None).compatibility_score == 0.5


class TestCompareRankings:
    def test_identical(self):
        agreement = compare_rankings(["a", "b", "c"], ["a", "b", "c"])
        assert agreement.spearman == pytest.approx(1.0)
        assert agreement.top_k_jaccard == 1.0

    def test_reversed(self):
        agreement = compare_rankings(["a", "b", "c"], ["c", "b", "a"], top_k=1)
        assert agreement.spearman == pytest.approx(-1.0)
        assert agreement.top_k_jaccard == 0.0

    def test_too_few_shared(self):
        assert compare_rankings(["a"], ["b"]).n_shared == 0


class TestDistributionAndReport:
    def test_stats(self):
        stats = compute_score_distribution_stats(np.array([0.2, 0.4, 0.6, 0.8]))
        assert stats.mean == pytest.approx(0.5)
        assert stats.min == 0.2
        assert "p50" in stats.quantiles

    def test_empty_stats(self):
        assert compute_score_distribution_stats([]).mean == 0.0

    def test_report_save(self, tmp_path):
        report = EvaluationReport(
            requester_id="r",
            distribution_stats=compute_score_distribution_stats([0.5, 0.6]),
            page_check=check_page_invariants([_page(("a", 0.6), ("b", 0.5))]),
            agreement=compare_rankings(["a", "b"], ["a", "b"]),
        )
        path = tmp_path / "report.json"
        report.save(str(path))
        saved = json.loads(path.read_text())
        assert saved["page_check"]["passed"] is True
        assert "Evaluation Report: r" in report.summary()

    def test_report_sections(self):
        import nemesis.evaluation as evaluation

        report = EvaluationReport(
            requester_id="r",
            distribution_stats=compute_score_distribution_stats([0.5]),
            page_check=check_page_invariants([_page(("a", 0.5))]),
            agreement=compare_rankings(["a"], ["a"]),
        )
        assert set(report.to_dict()) == {
            "requester_id", "distribution_stats", "additional_metrics", "page_check", "agreement"
        }
        assert set(evaluation.__all__) == {
            "compute_score_distribution_stats", "check_page_invariants",
            "compare_rankings", "EvaluationReport",
        }
