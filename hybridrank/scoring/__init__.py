"""Relevance scorers: keyword, similarity, feedback and hybrid."""

from hybridrank.scoring.feedback import (
    FeedbackRatingStats,
    FeedbackScoreResult,
    batch_compute_feedback_scores,
    compute_feedback_score,
    feedback_rating_stats,
)
from hybridrank.scoring.hybrid import (
    HybridComponents,
    HybridScore,
    batch_calculate_hybrid_scores,
    calculate_hybrid_score,
    normalize_component,
    scoring_configuration,
)
from hybridrank.scoring.keyword import (
    KeywordScoreResult,
    batch_calculate_keyword_scores,
    calculate_keyword_match_score,
    calculate_keyword_score,
    extract_keyword_text,
)
from hybridrank.scoring.similarity import cosine_similarity, determine_relevance_tier
from hybridrank.scoring.stats import ScoreDistribution, score_distribution
from hybridrank.store.vectors import decode_vector


__all__ = [
    "FeedbackRatingStats",
    "FeedbackScoreResult",
    "HybridComponents",
    "HybridScore",
    "KeywordScoreResult",
    "ScoreDistribution",
    "batch_calculate_hybrid_scores",
    "batch_calculate_keyword_scores",
    "batch_compute_feedback_scores",
    "calculate_hybrid_score",
    "calculate_keyword_match_score",
    "calculate_keyword_score",
    "compute_feedback_score",
    "cosine_similarity",
    "decode_vector",
    "determine_relevance_tier",
    "extract_keyword_text",
    "feedback_rating_stats",
    "normalize_component",
    "score_distribution",
    "scoring_configuration",
]
