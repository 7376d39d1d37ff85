"""Score distribution summaries for monitoring."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from hybridrank.config.schemas import HybridScoringConfig, TierThresholds
from hybridrank.scoring.similarity import determine_relevance_tier


BUCKET_LABELS = ("0.0-0.2", "0.2-0.4", "0.4-0.6", "0.6-0.8", "0.8-1.0")


@dataclass(frozen=True)
class ScoreDistribution:
    """Histogram and tier counts of a set of final scores.

    Attributes:
        count: Number of scores summarized.
        buckets: Count per 0.2-wide bucket, keyed by label.
        tiers: Count per relevance tier 1..4.
        average: Mean score (0.0 when empty).
        minimum: Lowest score (0.0 when empty).
        maximum: Highest score (0.0 when empty).
    """

    count: int
    buckets: dict[str, int] = field(default_factory=dict)
    tiers: dict[int, int] = field(default_factory=dict)
    average: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "buckets": dict(self.buckets),
            "tiers": dict(self.tiers),
            "average": self.average,
            "min": self.minimum,
            "max": self.maximum,
        }


_BUCKET_UPPER_BOUNDS = (0.2, 0.4, 0.6, 0.8)


def _bucket(score: float) -> str:
    for label, upper in zip(BUCKET_LABELS, _BUCKET_UPPER_BOUNDS, strict=False):
        if score < upper:
            return label
    return BUCKET_LABELS[-1]


def score_distribution(
    scores: Sequence[float],
    thresholds: TierThresholds | None = None,
) -> ScoreDistribution:
    """Summarize final scores.

    Args:
        scores: Final scores in [0, 1].
        thresholds: Tier thresholds (hybrid defaults when omitted).

    Returns:
        ScoreDistribution over the given scores.
    """
    t = thresholds or HybridScoringConfig().thresholds
    buckets = dict.fromkeys(BUCKET_LABELS, 0)
    tiers = dict.fromkeys(range(1, 5), 0)

    for score in scores:
        buckets[_bucket(score)] += 1
        tiers[int(determine_relevance_tier(score, t))] += 1

    if not scores:
        return ScoreDistribution(count=0, buckets=buckets, tiers=tiers)

    return ScoreDistribution(
        count=len(scores),
        buckets=buckets,
        tiers=tiers,
        average=sum(scores) / len(scores),
        minimum=min(scores),
        maximum=max(scores),
    )
