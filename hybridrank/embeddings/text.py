"""Text extraction for embedding requests."""

from hybridrank.store.models import ContentItem, ResearchStatement


DEFAULT_MAX_CHARS = 1000


def extract_content_text(item: ContentItem, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Build the text embedded for a content item.

    The title is followed by the first non-empty of summary, page text and
    raw content, separated by a blank line.

    Args:
        item: Content item.
        max_chars: Character cap on the result.

    Returns:
        Embedding text, empty when the item carries no text at all.
    """
    title = (item.title or "").strip()
    body = ""
    for candidate in (item.summary, item.page_text, item.raw_content):
        if candidate and candidate.strip():
            body = candidate.strip()
            break

    combined = "\n\n".join(part for part in (title, body) if part)
    return combined[:max_chars]


def extract_statement_text(
    statement: ResearchStatement, max_chars: int = DEFAULT_MAX_CHARS
) -> str:
    """Build the text embedded for a research statement."""
    parts = (statement.name.strip(), statement.statement.strip())
    return "\n\n".join(part for part in parts if part)[:max_chars]
