"""
Command-line runner for the nemesis ranking engine.

This is the single entrypoint for ranking one requester against a snapshot.

Usage:
    python -m nemesis.run --config configs/config.yaml --requester user_0001

The runner performs the following steps:
1. Load and validate configuration
2. Load the snapshot (or generate a synthetic one when data is missing)
3. Derive the reference vector from the requester's embedding
4. Rank candidates and cut the requested page
5. Evaluate the page and compare against the alternative reference strategy
6. Print the page as JSON and optionally save a report
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def run_ranking(
    config_path: str,
    requester_id: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    reference_strategy: str = "own",
    return_breakdown: bool = False,
    force_synthetic: bool = False,
    report_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Rank one requester and evaluate the resulting page.

    Args:
        config_path: Path to the configuration YAML file
        requester_id: Requesting user (defaults to the first embedded user)
        limit: Page size (defaults to ranking.default_limit)
        offset: Ranked candidates to skip
        reference_strategy: "own" or "negated"
        return_breakdown: Attach per-signal components to each item
        force_synthetic: Ignore snapshot files and generate data
        report_path: If provided, write the evaluation report here

    Returns:
        Dictionary with the page and evaluation results
    """
    # Import modules here to keep CLI startup light
    from .configs import load_config, validate_config
    from .data_loading import load_snapshot, create_synthetic_snapshot
    from .errors import NotFound
    from .ranking import NemesisRanker, derive_reference_vector, REFERENCE_STRATEGIES
    from .evaluation import (
        compute_score_distribution_stats,
        check_page_invariants,
        compare_rankings,
        EvaluationReport
    )

    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        for issue in issues:
            logger.warning(f"Config issue: {issue}")

    setup_logging(config.get("global", {}).get("log_level", "INFO"))
    seed = config.get("global", {}).get("random_seed", 42)

    # =========================================================================
    # Load snapshot
    # =========================================================================
    data_config = config.get("data", {})
    snapshot = None
    if not force_synthetic:
        try:
            snapshot = load_snapshot(data_config.get("snapshot_dir", "data/snapshot"), data_config.get("files"))
        except FileNotFoundError as e:
            logger.error(f"Snapshot not found: {e}")
            logger.info("Creating synthetic snapshot for demonstration...")
    if snapshot is None:
        snapshot = create_synthetic_snapshot(config, random_seed=seed)

    if requester_id is None:
        embedded = [u for u in snapshot.profiles.list_users() if u.has_embedding]
        if not embedded:
            raise ValueError("No requester given and no user has an embedding")
        requester_id = embedded[0].user_id
        logger.info(f"No requester given, using {requester_id}")

    limit = limit or config.get("ranking", {}).get("default_limit", 20)

    # =========================================================================
    # Rank
    # =========================================================================
    requester = snapshot.profiles.get_user(requester_id)
    if requester is None:
        raise NotFound(f"Unknown requester: {requester_id}")
    reference = derive_reference_vector(requester, reference_strategy)
    alternative = next(s for s in REFERENCE_STRATEGIES if s != reference_strategy)

    with NemesisRanker.from_snapshot(snapshot, config) as ranker:
        page = ranker.rank_nemeses(requester_id, limit, offset, reference, return_breakdown=return_breakdown)
        alternative_page = ranker.rank_nemeses(
            requester_id, limit, offset, derive_reference_vector(requester, alternative)
        )

    # =========================================================================
    # Evaluate
    # =========================================================================
    excluded = (
        {requester_id}
        | set(snapshot.judgments.liked_by(requester_id))
        | set(snapshot.judgments.disliked_by(requester_id))
    )
    page_check = check_page_invariants([page], excluded)
    agreement = compare_rankings(page.user_ids, alternative_page.user_ids, top_k=limit)

    report = EvaluationReport(
        requester_id=requester_id,
        distribution_stats=compute_score_distribution_stats(
            [item.compatibility_score for item in page.items]
        ),
        page_check=page_check,
        agreement=agreement,
        additional_metrics={
            "reference_strategy": reference_strategy,
            "compared_with": alternative,
            "total_candidates": page.total_candidates
        }
    )
    logger.info("\n" + report.summary())

    if report_path:
        Path(report_path).parent.mkdir(parents=True, exist_ok=True)
        report.save(report_path)

    return {
        "success": page_check.passed,
        "page": page.to_dict(),
        "report": report.to_dict()
    }


def main():
    """Main entry point for the ranking CLI."""
    parser = argparse.ArgumentParser(
        description="Rank a requester's nemeses from a data snapshot"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--requester",
        type=str,
        default=None,
        help="Requesting user id (defaults to the first user with an embedding)"
    )
    parser.add_argument("--limit", type=int, default=None, help="Page size")
    parser.add_argument("--offset", type=int, default=0, help="Ranked candidates to skip")
    parser.add_argument(
        "--reference",
        choices=["own", "negated"],
        default="own",
        help=(
            "How to derive the reference vector from the requester's embedding; "
            "'negated' inverts the profile signal so the most similar profiles rank first"
        )
    )
    parser.add_argument("--breakdown", action="store_true", help="Include per-signal components")
    parser.add_argument("--synthetic", action="store_true", help="Use a generated snapshot")
    parser.add_argument("--report", type=str, default=None, help="Write the evaluation report to this path")

    args = parser.parse_args()

    from .errors import NemesisError

    try:
        result = run_ranking(
            args.config,
            requester_id=args.requester,
            limit=args.limit,
            offset=args.offset,
            reference_strategy=args.reference,
            return_breakdown=args.breakdown,
            force_synthetic=args.synthetic,
            report_path=args.report
        )
    except NemesisError as e:
        retry = " (retryable)" if e.retryable else ""
        logger.error(f"Ranking failed: {type(e).__name__}: {e}{retry}")
        return 2
    except Exception as e:
        logger.exception(f"Ranking failed with error: {e}")
        return 1

    print(json.dumps(result["page"], indent=2))
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
