"""Scoring configuration schema.

All tunables of the pipeline live here: keyword normalization constants,
similarity and hybrid tier thresholds, feedback neighbourhood settings,
hybrid weights, embedding text limits and orchestrator batch sizes.
"""

import math
from typing import Annotated

from pydantic import Field, model_validator

from hybridrank.data_model import StrictBaseModel


# Weights whose sum is within this distance of 1.0 count as balanced.
WEIGHT_SUM_TOLERANCE = 1e-3


class TierThresholds(StrictBaseModel):
    """Lower bounds for relevance tiers 4, 3 and 2.

    Tier 1 is the catch-all for anything below ``tier2_min``.

    Attributes:
        tier4_min: Minimum score for tier 4 (Very Relevant).
        tier3_min: Minimum score for tier 3 (Relevant).
        tier2_min: Minimum score for tier 2 (Weakly Relevant).
    """

    tier4_min: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.8
    tier3_min: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.65
    tier2_min: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.5

    @model_validator(mode="after")
    def validate_descending(self) -> "TierThresholds":
        """Ensure thresholds are strictly descending."""
        if not self.tier4_min > self.tier3_min > self.tier2_min:
            msg = (
                "Tier thresholds must satisfy tier4_min > tier3_min > tier2_min, "
                f"got {self.tier4_min}/{self.tier3_min}/{self.tier2_min}"
            )
            raise ValueError(msg)
        return self


def _hybrid_thresholds() -> TierThresholds:
    """Blended scores compress toward the middle, so tiers start lower."""
    return TierThresholds(tier4_min=0.75, tier3_min=0.6, tier2_min=0.45)


class KeywordScoringConfig(StrictBaseModel):
    """Keyword match scoring configuration.

    Attributes:
        max_keyword_score: Half-saturation constant K in ``raw / (raw + K)``.
        negative_penalty: Multiplier applied to negative keyword hits.
        title_weight: Points per keyword occurrence in the title.
        body_weight: Points per keyword occurrence in the combined text.
        neutral_score: Score returned when a statement has no keywords.
    """

    max_keyword_score: Annotated[float, Field(gt=0.0)] = 10.0
    negative_penalty: Annotated[float, Field(ge=0.0)] = 0.5
    title_weight: Annotated[float, Field(ge=0.0)] = 2.0
    body_weight: Annotated[float, Field(ge=0.0)] = 0.5
    neutral_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5


class SimilarityScoringConfig(StrictBaseModel):
    """Similarity-only tiering configuration."""

    thresholds: TierThresholds = Field(default_factory=TierThresholds)


class FeedbackScoringConfig(StrictBaseModel):
    """Feedback scoring configuration.

    Attributes:
        min_similarity_threshold: Rated items less similar than this are ignored.
        similarity_decay_factor: Exponent applied to similarity weights.
        max_similar_items: Number of nearest rated items considered.
    """

    min_similarity_threshold: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.1
    similarity_decay_factor: Annotated[float, Field(ge=0.0, le=20.0)] = 2.0
    max_similar_items: Annotated[int, Field(ge=1)] = 50


class HybridWeights(StrictBaseModel):
    """Weights of the three component scores.

    Weights are not required to sum to 1; the final score is clamped.
    """

    keyword: Annotated[float, Field(ge=0.0)] = 0.3
    similarity: Annotated[float, Field(ge=0.0)] = 0.4
    feedback: Annotated[float, Field(ge=0.0)] = 0.3

    @property
    def total(self) -> float:
        """Sum of all weights."""
        return self.keyword + self.similarity + self.feedback

    @property
    def is_balanced(self) -> bool:
        """Whether the weights sum to 1."""
        return math.isclose(self.total, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE)


class HybridScoringConfig(StrictBaseModel):
    """Hybrid combination configuration.

    Attributes:
        weights: Component weights.
        thresholds: Tier thresholds for the blended score.
        min_keyword_score: Keyword scores below this count as 0.
        min_similarity_score: Similarity scores below this count as 0.
        min_feedback_score: Feedback scores below this count as 0.
    """

    weights: HybridWeights = Field(default_factory=HybridWeights)
    thresholds: TierThresholds = Field(default_factory=_hybrid_thresholds)
    min_keyword_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    min_similarity_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    min_feedback_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0


class EmbeddingConfig(StrictBaseModel):
    """Embedding text extraction and provider configuration.

    Attributes:
        max_chars: Character cap for text sent to the provider.
        model: Provider model identifier (provider default when unset).
        request_timeout_seconds: HTTP timeout for remote providers.
        cost_per_1k_tokens: Estimated USD cost used for usage accounting.
    """

    max_chars: Annotated[int, Field(ge=1, le=100_000)] = 1000
    model: str | None = None
    request_timeout_seconds: Annotated[float, Field(gt=0.0, le=600.0)] = 30.0
    cost_per_1k_tokens: Annotated[float, Field(ge=0.0)] = 0.00002


class EnrichmentConfig(StrictBaseModel):
    """Orchestrator configuration.

    Attributes:
        batch_size: Rows pulled from the store per page.
        reset_feedback_on_force: Whether a forced run also clears feedback scores.
        embed_missing_statements: Compute missing statement embeddings when a
            provider is available.
    """

    batch_size: Annotated[int, Field(ge=1, le=1000)] = 100
    reset_feedback_on_force: bool = True
    embed_missing_statements: bool = True


class ScoringConfig(StrictBaseModel):
    """Root configuration for scoring.yaml."""

    version: Annotated[str, Field(pattern=r"^\d+\.\d+$")] = "1.0"
    keyword: KeywordScoringConfig = Field(default_factory=KeywordScoringConfig)
    similarity: SimilarityScoringConfig = Field(
        default_factory=SimilarityScoringConfig
    )
    feedback: FeedbackScoringConfig = Field(default_factory=FeedbackScoringConfig)
    hybrid: HybridScoringConfig = Field(default_factory=HybridScoringConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
