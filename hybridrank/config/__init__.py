"""Scoring configuration schemas and loading."""

from hybridrank.config.loader import ConfigLoader, ConfigValidationError
from hybridrank.config.schemas import (
    EmbeddingConfig,
    EnrichmentConfig,
    FeedbackScoringConfig,
    HybridScoringConfig,
    HybridWeights,
    KeywordScoringConfig,
    ScoringConfig,
    SimilarityScoringConfig,
    TierThresholds,
)


__all__ = [
    "ConfigLoader",
    "ConfigValidationError",
    "EmbeddingConfig",
    "EnrichmentConfig",
    "FeedbackScoringConfig",
    "HybridScoringConfig",
    "HybridWeights",
    "KeywordScoringConfig",
    "ScoringConfig",
    "SimilarityScoringConfig",
    "TierThresholds",
]
