"""Cosine similarity and relevance tiering.

Similarity is computed over the shared prefix of two vectors; mismatched
lengths are tolerated rather than rejected. Non-finite components are
dropped pairwise so a single corrupted value cannot poison a score.
"""

import math
from collections.abc import Sequence

import numpy as np

from hybridrank.config.schemas import TierThresholds
from hybridrank.store.models import RelevanceTier, Vector


_DEFAULT_THRESHOLDS = TierThresholds()


def cosine_similarity(
    a: Sequence[float] | Vector | None,
    b: Sequence[float] | Vector | None,
) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector is missing, empty,
        non-numeric or has zero norm.
    """
    if a is None or b is None:
        return 0.0

    try:
        va = np.asarray(a, dtype=np.float64).ravel()
        vb = np.asarray(b, dtype=np.float64).ravel()
    except (TypeError, ValueError):
        return 0.0

    length = min(va.size, vb.size)
    if length == 0:
        return 0.0

    va = va[:length]
    vb = vb[:length]
    finite = np.isfinite(va) & np.isfinite(vb)
    va = va[finite]
    vb = vb[finite]

    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0 or not math.isfinite(denominator):
        return 0.0

    similarity = float(np.dot(va, vb)) / denominator
    if not math.isfinite(similarity):
        return 0.0
    return max(-1.0, min(1.0, similarity))


def determine_relevance_tier(
    score: float | None,
    thresholds: TierThresholds | None = None,
) -> RelevanceTier:
    """Map a score onto a relevance tier.

    Args:
        score: Similarity or hybrid score. Missing or non-finite values
            fall into the lowest tier.
        thresholds: Tier lower bounds (similarity defaults when omitted).

    Returns:
        Tier 4 if score >= tier4_min, 3 if >= tier3_min, 2 if >= tier2_min,
        otherwise 1.
    """
    t = thresholds or _DEFAULT_THRESHOLDS
    if score is None or not math.isfinite(score):
        return RelevanceTier.NOT_RELEVANT
    if score >= t.tier4_min:
        return RelevanceTier.VERY_RELEVANT
    if score >= t.tier3_min:
        return RelevanceTier.RELEVANT
    if score >= t.tier2_min:
        return RelevanceTier.WEAKLY_RELEVANT
    return RelevanceTier.NOT_RELEVANT
