"""Keyword scoring of content items against research statements.

Each keyword contributes ``log(1 + hits)`` where title hits weigh more
than hits in the combined text. Negative keyword hits are subtracted at a
discount and the net is squashed into [0, 1) with ``raw / (raw + K)``.
"""

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from hybridrank.config.schemas import KeywordScoringConfig
from hybridrank.store.models import ContentItem, ResearchStatement


logger = structlog.get_logger()

_DEFAULT_OPTIONS = KeywordScoringConfig()


@dataclass(frozen=True)
class KeywordScoreResult:
    """Keyword score computed for one item.

    Attributes:
        content_item_id: Item the score belongs to.
        research_statement_id: Statement the score was computed against.
        score: Keyword score in [0, 1).
    """

    content_item_id: int
    research_statement_id: int
    score: float


def extract_keyword_text(item: ContentItem) -> str:
    """Combine title, summary and page text into one case-folded string."""
    parts = [item.title, item.summary, item.page_text]
    return " ".join(part for part in parts if part).casefold()


def _count(pattern: re.Pattern[str], text: str) -> int:
    return len(pattern.findall(text)) if text else 0


def calculate_keyword_match_score(
    keyword: str,
    title: str,
    text: str,
    options: KeywordScoringConfig | None = None,
) -> float:
    """Score the occurrences of one keyword.

    Args:
        keyword: Literal phrase to look for (matched case-insensitively).
        title: Item title.
        text: Combined item text.
        options: Title and body weights.

    Returns:
        ``log(1 + title_hits * title_weight + text_hits * body_weight)``,
        0.0 for a blank keyword.
    """
    opts = options or _DEFAULT_OPTIONS
    phrase = keyword.strip()
    if not phrase:
        return 0.0

    pattern = re.compile(re.escape(phrase.casefold()), re.IGNORECASE)
    score = (
        _count(pattern, title.casefold()) * opts.title_weight
        + _count(pattern, text.casefold()) * opts.body_weight
    )
    return math.log1p(score)


def calculate_keyword_score(
    item: ContentItem,
    statement: ResearchStatement,
    options: KeywordScoringConfig | None = None,
) -> float:
    """Compute the keyword score of an item for a statement.

    Returns:
        The neutral score when the statement has no positive keywords, 0.0
        when the item has no text, otherwise ``raw / (raw + K)``. Any failure
        while scoring yields 0.0.
    """
    opts = options or _DEFAULT_OPTIONS
    try:
        keywords = [k for k in statement.keywords if k.strip()]
        if not keywords:
            return opts.neutral_score

        text = extract_keyword_text(item)
        if not text.strip():
            return 0.0

        title = item.title or ""
        positive = sum(
            calculate_keyword_match_score(k, title, text, opts) for k in keywords
        )
        negative = sum(
            calculate_keyword_match_score(k, title, text, opts)
            for k in statement.negative_keywords
        )

        raw = max(0.0, positive - opts.negative_penalty * negative)
        return raw / (raw + opts.max_keyword_score)
    except Exception:  # noqa: BLE001
        logger.warning(
            "keyword_score_failed",
            component="scoring",
            subcomponent="keyword",
            content_item_id=item.id,
            statement_id=statement.id,
            exc_info=True,
        )
        return 0.0


def batch_calculate_keyword_scores(
    items: Sequence[ContentItem],
    statement: ResearchStatement,
    options: KeywordScoringConfig | None = None,
) -> list[KeywordScoreResult]:
    """Score a batch of stored items, one result per item in input order."""
    return [
        KeywordScoreResult(
            content_item_id=item.id if item.id is not None else 0,
            research_statement_id=statement.id,
            score=calculate_keyword_score(item, statement, options),
        )
        for item in items
    ]
