"""Weighted combination of keyword, similarity and feedback scores."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from hybridrank.config.schemas import HybridScoringConfig
from hybridrank.scoring.similarity import determine_relevance_tier
from hybridrank.store.models import HybridCandidate, HybridScoreUpdate, RelevanceTier


logger = structlog.get_logger()

_DEFAULT_CONFIG = HybridScoringConfig()


@dataclass(frozen=True)
class HybridComponents:
    """Normalized component scores that entered the blend."""

    keyword: float
    similarity: float
    feedback: float


@dataclass(frozen=True)
class HybridScore:
    """Result of combining the component scores.

    Attributes:
        final_score: Weighted blend clamped to [0, 1].
        relevance_tier: Tier under the hybrid thresholds.
        components: Component values after normalization.
    """

    final_score: float
    relevance_tier: RelevanceTier
    components: HybridComponents

    @property
    def has_keyword_data(self) -> bool:
        return self.components.keyword > 0.0

    @property
    def has_similarity_data(self) -> bool:
        return self.components.similarity > 0.0

    @property
    def has_feedback_data(self) -> bool:
        return self.components.feedback > 0.0


def normalize_component(value: float | None, min_score: float = 0.0) -> float:
    """Validate one component score.

    Missing, non-finite and out-of-range values become 0.0, as do values
    below ``min_score``.
    """
    if value is None:
        return 0.0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(score) or score < 0.0 or score > 1.0:
        return 0.0
    return score if score >= min_score else 0.0


def calculate_hybrid_score(
    keyword: float | None,
    similarity: float | None,
    feedback: float | None,
    config: HybridScoringConfig | None = None,
) -> HybridScore:
    """Blend the three component scores.

    Args:
        keyword: Keyword score.
        similarity: Similarity score.
        feedback: Feedback score.
        config: Weights, per-component minimums and hybrid thresholds.

    Returns:
        HybridScore with ``final = sum(w_i * s_i)`` clamped to [0, 1].
    """
    cfg = config or _DEFAULT_CONFIG
    components = HybridComponents(
        keyword=normalize_component(keyword, cfg.min_keyword_score),
        similarity=normalize_component(similarity, cfg.min_similarity_score),
        feedback=normalize_component(feedback, cfg.min_feedback_score),
    )
    weights = cfg.weights
    final = (
        weights.keyword * components.keyword
        + weights.similarity * components.similarity
        + weights.feedback * components.feedback
    )
    final = max(0.0, min(1.0, final))
    return HybridScore(
        final_score=final,
        relevance_tier=determine_relevance_tier(final, cfg.thresholds),
        components=components,
    )


def batch_calculate_hybrid_scores(
    features: Sequence[HybridCandidate],
    config: HybridScoringConfig | None = None,
) -> list[HybridScoreUpdate]:
    """Blend component scores for a batch of feature rows.

    Returns:
        One update per row in input order; a row that fails to combine
        gets score 0.0 and tier 1.
    """
    updates: list[HybridScoreUpdate] = []
    for feature in features:
        try:
            result = calculate_hybrid_score(
                feature.keyword_score,
                feature.similarity_score,
                feature.feedback_score,
                config,
            )
            final, tier = result.final_score, int(result.relevance_tier)
        except Exception:  # noqa: BLE001
            logger.warning(
                "hybrid_score_failed",
                component="scoring",
                subcomponent="hybrid",
                content_item_id=feature.content_item_id,
                exc_info=True,
            )
            final, tier = 0.0, int(RelevanceTier.NOT_RELEVANT)
        updates.append(
            HybridScoreUpdate(
                content_item_id=feature.content_item_id,
                research_statement_id=feature.research_statement_id,
                final_score=final,
                relevance_tier=tier,
            )
        )
    return updates


def scoring_configuration(config: HybridScoringConfig | None = None) -> dict[str, object]:
    """Describe the active hybrid configuration for monitoring."""
    cfg = config or _DEFAULT_CONFIG
    return {
        "weights": cfg.weights.model_dump(),
        "minimums": {
            "keyword": cfg.min_keyword_score,
            "similarity": cfg.min_similarity_score,
            "feedback": cfg.min_feedback_score,
        },
        "thresholds": {**cfg.thresholds.model_dump(), "tier1_min": 0.0},
        "validation": {
            "weights_sum": cfg.weights.total,
            "is_balanced": cfg.weights.is_balanced,
        },
    }
