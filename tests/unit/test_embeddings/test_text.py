"""Unit tests for embedding text extraction."""

from hybridrank.embeddings.text import extract_content_text, extract_statement_text
from hybridrank.store.models import ContentItem, ResearchStatement


def _item(**fields: str | None) -> ContentItem:
    return ContentItem(source_type="rss", source_id="x", **fields)  # type: ignore[arg-type]


class TestExtractContentText:
    """Tests for extract_content_text."""

    def test_title_and_summary(self) -> None:
        """Summary is preferred as the body."""
        item = _item(title="Title", summary="Summary", page_text="Page")
        assert extract_content_text(item) == "Title\n\nSummary"

    def test_falls_back_to_page_text(self) -> None:
        """Blank summaries fall through to the page text."""
        item = _item(title="Title", summary="  ", page_text="Page")
        assert extract_content_text(item) == "Title\n\nPage"

    def test_falls_back_to_raw_content(self) -> None:
        """Raw content is the last resort."""
        assert extract_content_text(_item(raw_content="Raw")) == "Raw"

    def test_empty(self) -> None:
        """Items without any text give an empty string."""
        assert extract_content_text(_item()) == ""

    def test_cap(self) -> None:
        """Output is capped at max_chars."""
        assert len(extract_content_text(_item(title="x" * 50), max_chars=10)) == 10


class TestExtractStatementText:
    """Tests for extract_statement_text."""

    def test_name_and_statement(self) -> None:
        """Name and statement are joined."""
        statement = ResearchStatement(id=1, name="RAG", statement="Retrieval augmented")
        assert extract_statement_text(statement) == "RAG\n\nRetrieval augmented"
