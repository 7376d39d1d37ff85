"""Feedback scoring from user ratings of similar items.

An unrated item inherits relevance from the rated items it resembles:
each rating is normalized to [0, 1] and averaged with weights
``similarity ** decay`` over the nearest rated neighbours.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from hybridrank.config.schemas import FeedbackScoringConfig
from hybridrank.scoring.similarity import cosine_similarity
from hybridrank.store.models import (
    MAX_RATING,
    MIN_RATING,
    FeatureEmbeddingRow,
    RatedEmbedding,
    Vector,
)


logger = structlog.get_logger()

_DEFAULT_OPTIONS = FeedbackScoringConfig()
_RATING_SPAN = float(MAX_RATING - MIN_RATING)


@dataclass(frozen=True)
class FeedbackScoreResult:
    """Feedback score computed for one item."""

    content_item_id: int
    research_statement_id: int
    score: float


@dataclass(frozen=True)
class FeedbackRatingStats:
    """Rating distribution of the items feeding the feedback scorer.

    Attributes:
        total_rated: Number of rated items.
        average_rating: Mean rating, 0.0 when nothing is rated.
        distribution: Count per rating level 1..4.
    """

    total_rated: int
    average_rating: float
    distribution: dict[int, int] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        """Whether any ratings exist."""
        return self.total_rated > 0


def _normalize_rating(rating: int) -> float:
    clamped = max(MIN_RATING, min(MAX_RATING, rating))
    return (clamped - MIN_RATING) / _RATING_SPAN


def compute_feedback_score(
    target: Sequence[float] | Vector | None,
    rated: Sequence[RatedEmbedding],
    options: FeedbackScoringConfig | None = None,
) -> float:
    """Estimate relevance of an item from ratings of similar items.

    Args:
        target: Embedding of the item to score.
        rated: Rated items with their embeddings.
        options: Neighbourhood threshold, decay and size.

    Returns:
        Weighted average normalized rating in [0, 1]. Exactly 0.0 when the
        target has no embedding, nothing is rated, or no rated item clears
        the similarity threshold.
    """
    opts = options or _DEFAULT_OPTIONS
    if target is None or len(target) == 0 or not rated:
        return 0.0

    neighbours: list[tuple[float, int, int]] = []
    for entry in rated:
        if entry.embedding is None or len(entry.embedding) == 0:
            continue
        similarity = cosine_similarity(target, entry.embedding)
        if similarity >= opts.min_similarity_threshold:
            neighbours.append((similarity, entry.content_item_id, entry.rating))

    if not neighbours:
        return 0.0

    neighbours.sort(key=lambda n: (-n[0], n[1]))

    weighted_sum = 0.0
    total_weight = 0.0
    for similarity, _, rating in neighbours[: opts.max_similar_items]:
        # Negative similarity only clears a negative threshold; it carries no weight.
        weight = max(similarity, 0.0) ** opts.similarity_decay_factor
        weighted_sum += _normalize_rating(rating) * weight
        total_weight += weight

    if total_weight == 0.0:
        return 0.0
    return max(0.0, min(1.0, weighted_sum / total_weight))


def batch_compute_feedback_scores(
    targets: Sequence[FeatureEmbeddingRow],
    rated: Sequence[RatedEmbedding],
    options: FeedbackScoringConfig | None = None,
) -> list[FeedbackScoreResult]:
    """Score a batch of feature rows against the statement's ratings.

    A rated item is never compared with itself, so its score reflects the
    ratings of its neighbours.

    Returns:
        One result per target in input order; 0.0 under cold start or when
        scoring a target fails.
    """
    if not rated:
        return [
            FeedbackScoreResult(t.content_item_id, t.research_statement_id, 0.0)
            for t in targets
        ]

    results: list[FeedbackScoreResult] = []
    for target in targets:
        try:
            others = [r for r in rated if r.content_item_id != target.content_item_id]
            score = compute_feedback_score(target.embedding, others, options)
        except Exception:  # noqa: BLE001
            logger.warning(
                "feedback_score_failed",
                component="scoring",
                subcomponent="feedback",
                content_item_id=target.content_item_id,
                exc_info=True,
            )
            score = 0.0
        results.append(
            FeedbackScoreResult(
                target.content_item_id, target.research_statement_id, score
            )
        )
    return results


def feedback_rating_stats(rated: Sequence[RatedEmbedding]) -> FeedbackRatingStats:
    """Summarize the ratings available to the feedback scorer."""
    distribution = dict.fromkeys(range(MIN_RATING, MAX_RATING + 1), 0)
    for entry in rated:
        if entry.rating in distribution:
            distribution[entry.rating] += 1

    total = len(rated)
    average = sum(entry.rating for entry in rated) / total if total else 0.0
    return FeedbackRatingStats(
        total_rated=total, average_rating=average, distribution=distribution
    )
