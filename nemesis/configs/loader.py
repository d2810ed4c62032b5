"""
Configuration loading and validation.

This module handles loading of YAML configuration files and
validates scoring weights, engine limits and data locations.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

logger = logging.getLogger(__name__)

SCORING_WEIGHT_KEYS = ["profile", "tag_embedding", "tag_overlap"]


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    required_sections = ["global", "data", "scoring", "engine", "ranking"]
    for section in required_sections:
        if section not in config:
            issues.append(f"Missing required section: {section}")

    if "data" in config and "snapshot_dir" not in config["data"]:
        issues.append("Missing data.snapshot_dir")

    # Scoring weights must sum to 1 so the composite stays in [0, 1]
    if "scoring" in config:
        scoring = config["scoring"]
        weights = scoring.get("weights", {})
        for key in SCORING_WEIGHT_KEYS:
            if key not in weights:
                issues.append(f"Missing scoring.weights.{key}")
        if weights:
            total = sum(weights.get(k, 0.0) for k in SCORING_WEIGHT_KEYS)
            if abs(total - 1.0) > 1e-6:
                issues.append(f"Scoring weights don't sum to 1: {total}")
            for key, value in weights.items():
                if not 0 <= value <= 1:
                    issues.append(f"scoring.weights.{key} must be in [0, 1], got {value}")

        neutral = scoring.get("neutral_score", 0.5)
        if not 0 <= neutral <= 1:
            issues.append(f"scoring.neutral_score must be in [0, 1], got {neutral}")

    if "engine" in config:
        engine = config["engine"]
        n_jobs = engine.get("n_jobs", 1)
        if n_jobs == 0:
            issues.append("engine.n_jobs must not be 0")
        if engine.get("chunk_size", 256) < 1:
            issues.append("engine.chunk_size must be positive")
        timeout = engine.get("timeout_seconds")
        if timeout is not None and timeout <= 0:
            issues.append(f"engine.timeout_seconds must be positive or null, got {timeout}")
        if engine.get("max_workers", 4) < 1:
            issues.append("engine.max_workers must be positive")

    if "ranking" in config:
        ranking = config["ranking"]
        default_limit = ranking.get("default_limit", 20)
        max_limit = ranking.get("max_limit", 100)
        if default_limit < 1:
            issues.append("ranking.default_limit must be positive")
        if max_limit < default_limit:
            issues.append(f"ranking.max_limit ({max_limit}) is below default_limit ({default_limit})")

    if "global" in config:
        if "random_seed" not in config["global"]:
            issues.append("Missing global.random_seed (required for synthetic data)")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "scoring.weights.profile")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
