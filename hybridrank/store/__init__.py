"""SQLite feature store for content items, research statements and scores.

This module provides persistent storage for:
- Content items and research statements with ordered keyword lists
- Per (item, statement) feature rows: embedding and component scores
- User ratings and daily embedding provider usage
"""

from hybridrank.store.errors import (
    BatchUpdateError,
    FeatureStoreError,
    MigrationError,
    StatementNotFoundError,
    StoreConnectionError,
    VectorEncodingError,
)
from hybridrank.store.metrics import StoreMetrics
from hybridrank.store.models import (
    AiUsage,
    BatchUpdateResult,
    ContentFeature,
    ContentItem,
    FeatureCounts,
    FeatureEmbeddingRow,
    HybridCandidate,
    HybridScoreUpdate,
    KeywordCandidate,
    RatedEmbedding,
    RatingStats,
    RelevanceTier,
    ResearchStatement,
    Vector,
)
from hybridrank.store.store import FeatureStore
from hybridrank.store.vectors import decode_vector, encode_vector


__all__ = [
    # Errors
    "BatchUpdateError",
    "FeatureStoreError",
    "MigrationError",
    "StatementNotFoundError",
    "StoreConnectionError",
    "VectorEncodingError",
    # Metrics
    "StoreMetrics",
    # Models
    "AiUsage",
    "BatchUpdateResult",
    "ContentFeature",
    "ContentItem",
    "FeatureCounts",
    "FeatureEmbeddingRow",
    "HybridCandidate",
    "HybridScoreUpdate",
    "KeywordCandidate",
    "RatedEmbedding",
    "RatingStats",
    "RelevanceTier",
    "ResearchStatement",
    "Vector",
    # Store
    "FeatureStore",
    # Vectors
    "decode_vector",
    "encode_vector",
]
