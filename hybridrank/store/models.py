"""Data models for the feature store.

Rows that carry embedding vectors are plain frozen dataclasses holding
``numpy`` arrays; everything else is a frozen Pydantic model like the rest
of the configuration layer.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Annotated

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, ConfigDict, Field


Vector = npt.NDArray[np.float32]


class RelevanceTier(IntEnum):
    """Ordinal relevance classification shared by ratings and tiers."""

    NOT_RELEVANT = 1
    WEAKLY_RELEVANT = 2
    RELEVANT = 3
    VERY_RELEVANT = 4


MIN_RATING = int(RelevanceTier.NOT_RELEVANT)
MAX_RATING = int(RelevanceTier.VERY_RELEVANT)


class ContentItem(BaseModel):
    """A collected piece of content.

    ``id`` is assigned by the store on insert; items built by a collector
    leave it unset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = Field(default=None, description="Store-assigned identity")
    source_type: Annotated[str, Field(min_length=1, description="Collector name")]
    source_id: Annotated[str, Field(min_length=1, description="Id within source")]
    title: str = Field(default="", description="Item title")
    summary: str | None = Field(default=None, description="Short summary")
    page_text: str | None = Field(default=None, description="Extracted page text")
    raw_content: str | None = Field(default=None, description="Raw source payload")
    url: str | None = Field(default=None, description="Source URL")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the item was stored",
    )


@dataclass(frozen=True)
class ResearchStatement:
    """A user-authored topic used as the relevance target.

    Attributes:
        id: Statement identity.
        name: Short display name.
        statement: Full topic description.
        keywords: Positive keyword phrases, in authored order.
        negative_keywords: Negative keyword phrases, in authored order.
        embedding: Statement embedding, None until computed.
        is_active: Whether the statement takes part in enrichment runs.
    """

    id: int
    name: str
    statement: str
    keywords: tuple[str, ...] = ()
    negative_keywords: tuple[str, ...] = ()
    embedding: Vector | None = field(default=None, compare=False, repr=False)
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class FeatureEmbeddingRow:
    """A content feature row with its stored embedding.

    ``embedding`` is None when the stored payload could not be decoded.
    """

    content_item_id: int
    research_statement_id: int
    embedding: Vector | None = field(compare=False, repr=False)


@dataclass(frozen=True)
class KeywordCandidate:
    """A content feature row that still needs a keyword score."""

    research_statement_id: int
    item: ContentItem

    @property
    def content_item_id(self) -> int:
        """Identity of the underlying item."""
        if self.item.id is None:
            raise ValueError("Keyword candidate item has not been stored")
        return self.item.id


@dataclass(frozen=True)
class HybridCandidate:
    """Component scores of a feature row that has no final score yet."""

    content_item_id: int
    research_statement_id: int
    keyword_score: float | None
    similarity_score: float | None
    feedback_score: float | None


@dataclass(frozen=True)
class RatedEmbedding:
    """A user rating paired with the rated item's embedding."""

    content_item_id: int
    rating: int
    embedding: Vector | None = field(compare=False, repr=False)


@dataclass(frozen=True)
class HybridScoreUpdate:
    """A final score and tier to persist for one feature row."""

    content_item_id: int
    research_statement_id: int
    final_score: float
    relevance_tier: int


class ContentFeature(BaseModel):
    """Scalar view of a content feature row (embedding omitted)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    content_item_id: int
    research_statement_id: int
    has_embedding: bool = False
    similarity_score: float | None = None
    keyword_score: float | None = None
    feedback_score: float | None = None
    final_score: float | None = None
    relevance_tier: int | None = None


class FeatureCounts(BaseModel):
    """Progress counters for one research statement."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: Annotated[int, Field(ge=0, description="Feature rows")] = 0
    missing_embedding: Annotated[int, Field(ge=0)] = 0
    missing_similarity: Annotated[int, Field(ge=0)] = 0
    missing_keyword: Annotated[int, Field(ge=0)] = 0
    missing_feedback: Annotated[int, Field(ge=0)] = 0
    missing_final: Annotated[int, Field(ge=0)] = 0


class BatchUpdateResult(BaseModel):
    """Outcome of a transactional batch update."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    completed: Annotated[int, Field(ge=0)] = 0
    failed: Annotated[int, Field(ge=0)] = 0


class RatingStats(BaseModel):
    """Distribution of user ratings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = 0
    very_relevant: int = 0
    relevant: int = 0
    weakly_relevant: int = 0
    not_relevant: int = 0


class AiUsage(BaseModel):
    """Embedding provider usage for one UTC day."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: Annotated[str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$")]
    tokens_used: int = 0
    estimated_cost: float = 0.0
    requests_count: int = 0
