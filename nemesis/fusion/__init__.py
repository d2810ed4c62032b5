"""Score composition module for combining anti-similarity signals."""

from .score_composer import ScoreComposer, ComposerConfig, create_composer_from_config

__all__ = ["ScoreComposer", "ComposerConfig", "create_composer_from_config"]
