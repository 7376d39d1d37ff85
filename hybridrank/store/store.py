"""SQLite feature store implementation."""

import sqlite3
import time
import uuid
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path

import structlog

from hybridrank.store.errors import (
    BatchUpdateError,
    StatementNotFoundError,
    StoreConnectionError,
)
from hybridrank.store.metrics import StoreMetrics, TransactionContext
from hybridrank.store.migrations import CURRENT_VERSION, MigrationManager
from hybridrank.store.models import (
    MAX_RATING,
    MIN_RATING,
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
    ResearchStatement,
    Vector,
)
from hybridrank.store.vectors import decode_vector, encode_vector


logger = structlog.get_logger()


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FeatureStore:
    """SQLite store for content items, research statements and features.

    Every write commits on its own except ``set_hybrid_scores``, which
    applies a whole batch or nothing. "Missing" queries select on
    ``IS NULL`` and page by ``content_item_id`` so callers can resume
    after rows they skipped.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the feature store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("connecting_to_database")

        # Background enrichment runs on a worker thread; the orchestrator
        # lock keeps access to one thread at a time.
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "FeatureStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Return the open connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(
            tx_id=tx_id, start_time_ns=start_ns, operation=operation
        )

        self._log.debug("transaction_started", tx_id=tx_id, op=operation)

        try:
            yield ctx
            conn.commit()
        except Exception:
            conn.rollback()
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_failed()
            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    # ===== Content Items =====

    def insert_item(self, item: ContentItem) -> int:
        """Insert a content item, or return the id of the existing one.

        Items are unique by ``(source_type, source_id)``.

        Args:
            item: Item to insert; its ``id`` is ignored.

        Returns:
            The stored item id.
        """
        with self._transaction("insert_item") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO content_items (
                    source_type, source_id, title, summary, page_text,
                    raw_content, url, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (source_type, source_id) DO NOTHING
                """,
                (
                    item.source_type,
                    item.source_id,
                    item.title,
                    item.summary,
                    item.page_text,
                    item.raw_content,
                    item.url,
                    item.created_at.isoformat(),
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT id FROM content_items WHERE source_type = ? AND source_id = ?",
                (item.source_type, item.source_id),
            ).fetchone()

        return int(row["id"])

    def get_item(self, item_id: int) -> ContentItem | None:
        """Get a content item by id."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM content_items WHERE id = ?", (item_id,)
        ).fetchone()
        return self._row_to_item(row) if row is not None else None

    def update_item_text(
        self,
        item_id: int,
        summary: str | None = None,
        page_text: str | None = None,
    ) -> bool:
        """Fill in summary or page text produced by later enrichment.

        Only the fields passed as non-None are updated.

        Returns:
            True if the item exists.
        """
        with self._transaction("update_item_text") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE content_items
                SET summary = COALESCE(?, summary),
                    page_text = COALESCE(?, page_text)
                WHERE id = ?
                """,
                (summary, page_text, item_id),
            )
            ctx.add_affected_rows(cursor.rowcount)
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_item(row: sqlite3.Row, prefix: str = "") -> ContentItem:
        return ContentItem(
            id=row[f"{prefix}id"],
            source_type=row[f"{prefix}source_type"],
            source_id=row[f"{prefix}source_id"],
            title=row[f"{prefix}title"] or "",
            summary=row[f"{prefix}summary"],
            page_text=row[f"{prefix}page_text"],
            raw_content=row[f"{prefix}raw_content"],
            url=row[f"{prefix}url"],
            created_at=datetime.fromisoformat(row[f"{prefix}created_at"]),
        )

    # ===== Research Statements =====

    def create_statement(
        self,
        name: str,
        statement: str,
        keywords: Sequence[str] = (),
        negative_keywords: Sequence[str] = (),
        is_active: bool = True,
    ) -> int:
        """Create a research statement with its keyword lists.

        Returns:
            The new statement id.
        """
        now = _now()
        with self._transaction("create_statement") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO research_statements (
                    name, statement, embedding, is_active, created_at, updated_at
                ) VALUES (?, ?, NULL, ?, ?, ?)
                """,
                (name, statement, 1 if is_active else 0, now, now),
            )
            statement_id = int(cursor.lastrowid or 0)
            ctx.add_affected_rows(1)
            ctx.add_affected_rows(
                self._write_keywords(conn, statement_id, keywords, negative_keywords)
            )

        self._log.info(
            "statement_created",
            statement_id=statement_id,
            keyword_count=len(keywords),
            negative_keyword_count=len(negative_keywords),
        )
        return statement_id

    def set_statement_keywords(
        self,
        statement_id: int,
        keywords: Sequence[str],
        negative_keywords: Sequence[str] = (),
    ) -> None:
        """Replace both keyword lists of a statement.

        Keyword and final scores of the statement are cleared in the same
        transaction so the next run rescores them.

        Raises:
            StatementNotFoundError: If the statement does not exist.
        """
        with self._transaction("set_statement_keywords") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE research_statements SET updated_at = ? WHERE id = ?",
                (_now(), statement_id),
            )
            if cursor.rowcount == 0:
                raise StatementNotFoundError(statement_id)
            conn.execute(
                "DELETE FROM statement_keywords WHERE statement_id = ?",
                (statement_id,),
            )
            ctx.add_affected_rows(
                self._write_keywords(conn, statement_id, keywords, negative_keywords)
            )
            cleared = conn.execute(
                """
                UPDATE content_features
                SET keyword_score = NULL, final_score = NULL, updated_at = ?
                WHERE research_statement_id = ?
                """,
                (_now(), statement_id),
            ).rowcount
        self._metrics.record_reset(cleared)
        self._log.info(
            "statement_keywords_updated",
            statement_id=statement_id,
            keyword_count=len(keywords),
            negative_keyword_count=len(negative_keywords),
            features_reset=cleared,
        )

    def set_statement_active(self, statement_id: int, is_active: bool) -> None:
        """Activate or deactivate a statement.

        Raises:
            StatementNotFoundError: If the statement does not exist.
        """
        with self._transaction("set_statement_active") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE research_statements SET is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                (1 if is_active else 0, _now(), statement_id),
            )
            if cursor.rowcount == 0:
                raise StatementNotFoundError(statement_id)
            ctx.add_affected_rows(cursor.rowcount)

    def update_statement_embedding(
        self, statement_id: int, vector: Sequence[float] | Vector
    ) -> None:
        """Store a (re)computed statement embedding.

        Raises:
            StatementNotFoundError: If the statement does not exist.
            VectorEncodingError: If the vector cannot be serialized.
        """
        payload = encode_vector(vector)
        with self._transaction("update_statement_embedding") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE research_statements SET embedding = ?, updated_at = ?
                WHERE id = ?
                """,
                (payload, _now(), statement_id),
            )
            if cursor.rowcount == 0:
                raise StatementNotFoundError(statement_id)
            ctx.add_affected_rows(cursor.rowcount)

    def get_statement(self, statement_id: int) -> ResearchStatement | None:
        """Get a research statement by id, active or not."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM research_statements WHERE id = ?", (statement_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_statement(conn, row)

    def get_active_statements(self) -> list[ResearchStatement]:
        """Get all active research statements ordered by id."""
        conn = self._ensure_connected()
        rows = conn.execute(
            "SELECT * FROM research_statements WHERE is_active = 1 ORDER BY id"
        ).fetchall()
        return [self._row_to_statement(conn, row) for row in rows]

    @staticmethod
    def _write_keywords(
        conn: sqlite3.Connection,
        statement_id: int,
        keywords: Sequence[str],
        negative_keywords: Sequence[str],
    ) -> int:
        rows = [
            (statement_id, "positive", position, keyword)
            for position, keyword in enumerate(keywords)
        ] + [
            (statement_id, "negative", position, keyword)
            for position, keyword in enumerate(negative_keywords)
        ]
        conn.executemany(
            """
            INSERT INTO statement_keywords (statement_id, polarity, position, keyword)
            VALUES (?, ?, ?, ?)
            """,
            rows,
        )
        return len(rows)

    @staticmethod
    def _row_to_statement(
        conn: sqlite3.Connection, row: sqlite3.Row
    ) -> ResearchStatement:
        keyword_rows = conn.execute(
            """
            SELECT polarity, keyword FROM statement_keywords
            WHERE statement_id = ?
            ORDER BY polarity, position
            """,
            (row["id"],),
        ).fetchall()
        positive = tuple(r["keyword"] for r in keyword_rows if r["polarity"] == "positive")
        negative = tuple(r["keyword"] for r in keyword_rows if r["polarity"] == "negative")

        return ResearchStatement(
            id=row["id"],
            name=row["name"],
            statement=row["statement"],
            keywords=positive,
            negative_keywords=negative,
            embedding=decode_vector(row["embedding"]),
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ===== Content Features =====

    def get_missing_embedding(
        self, statement_id: int, limit: int, after_item_id: int = 0
    ) -> list[ContentItem]:
        """Get items with no embedding for a statement.

        Args:
            statement_id: Research statement id.
            limit: Maximum rows to return.
            after_item_id: Only items with a greater id are returned.

        Returns:
            Items ordered by id.
        """
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT ci.* FROM content_items ci
            LEFT JOIN content_features cf
                ON cf.content_item_id = ci.id AND cf.research_statement_id = ?
            WHERE (cf.id IS NULL OR cf.content_embedding IS NULL)
                AND ci.id > ?
            ORDER BY ci.id
            LIMIT ?
            """,
            (statement_id, after_item_id, limit),
        ).fetchall()
        return [self._row_to_item(row) for row in rows]

    def find_item_embedding(self, item_id: int) -> Vector | None:
        """Get an embedding already stored for the item under any statement.

        Item embeddings do not depend on the statement, so one computed for
        another statement can be reused.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT content_embedding FROM content_features
            WHERE content_item_id = ? AND content_embedding IS NOT NULL
            ORDER BY updated_at DESC
            LIMIT 1
            """,
            (item_id,),
        ).fetchone()
        return decode_vector(row["content_embedding"]) if row is not None else None

    def upsert_embedding(
        self, item_id: int, statement_id: int, vector: Sequence[float] | Vector
    ) -> None:
        """Create the feature row for an item, or replace its embedding.

        Raises:
            VectorEncodingError: If the vector cannot be serialized.
        """
        payload = encode_vector(vector)
        now = _now()
        with self._transaction("upsert_embedding") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO content_features (
                    content_item_id, research_statement_id, content_embedding,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (content_item_id, research_statement_id) DO UPDATE SET
                    content_embedding = excluded.content_embedding,
                    updated_at = excluded.updated_at
                """,
                (item_id, statement_id, payload, now, now),
            )
            ctx.add_affected_rows(cursor.rowcount)
        self._metrics.record_embedding_upsert()

    def get_missing_similarity(
        self, statement_id: int, limit: int, after_item_id: int = 0
    ) -> list[FeatureEmbeddingRow]:
        """Get embedded feature rows with no similarity score."""
        return self._embedding_rows(
            "similarity_score", statement_id, limit, after_item_id
        )

    def get_missing_feedback_score(
        self, statement_id: int, limit: int, after_item_id: int = 0
    ) -> list[FeatureEmbeddingRow]:
        """Get embedded feature rows with no feedback score."""
        return self._embedding_rows(
            "feedback_score", statement_id, limit, after_item_id
        )

    def _embedding_rows(
        self, score_column: str, statement_id: int, limit: int, after_item_id: int
    ) -> list[FeatureEmbeddingRow]:
        conn = self._ensure_connected()
        rows = conn.execute(
            f"""
            SELECT content_item_id, research_statement_id, content_embedding
            FROM content_features
            WHERE research_statement_id = ?
                AND content_embedding IS NOT NULL
                AND {score_column} IS NULL
                AND content_item_id > ?
            ORDER BY content_item_id
            LIMIT ?
            """,  # noqa: S608
            (statement_id, after_item_id, limit),
        ).fetchall()
        return [
            FeatureEmbeddingRow(
                content_item_id=row["content_item_id"],
                research_statement_id=row["research_statement_id"],
                embedding=decode_vector(row["content_embedding"]),
            )
            for row in rows
        ]

    def set_similarity_and_tier(
        self, item_id: int, statement_id: int, score: float, tier: int
    ) -> bool:
        """Persist a similarity score and the tier derived from it.

        Returns:
            True if a feature row was updated.
        """
        return self._update_feature(
            "set_similarity_and_tier",
            "similarity_score = ?, relevance_tier = ?",
            (_clamp(score, -1.0, 1.0), tier),
            item_id,
            statement_id,
        )

    def get_missing_keyword_score(
        self, statement_id: int, limit: int, after_item_id: int = 0
    ) -> list[KeywordCandidate]:
        """Get feature rows with no keyword score, joined with their items."""
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT cf.research_statement_id,
                ci.id AS item_id, ci.source_type AS item_source_type,
                ci.source_id AS item_source_id, ci.title AS item_title,
                ci.summary AS item_summary, ci.page_text AS item_page_text,
                ci.raw_content AS item_raw_content, ci.url AS item_url,
                ci.created_at AS item_created_at
            FROM content_features cf
            JOIN content_items ci ON ci.id = cf.content_item_id
            WHERE cf.research_statement_id = ?
                AND cf.keyword_score IS NULL
                AND cf.content_item_id > ?
            ORDER BY cf.content_item_id
            LIMIT ?
            """,
            (statement_id, after_item_id, limit),
        ).fetchall()
        return [
            KeywordCandidate(
                research_statement_id=row["research_statement_id"],
                item=self._row_to_item(row, prefix="item_"),
            )
            for row in rows
        ]

    def set_keyword_score(self, item_id: int, statement_id: int, score: float) -> bool:
        """Persist a keyword score.

        Returns:
            True if a feature row was updated.
        """
        return self._update_feature(
            "set_keyword_score",
            "keyword_score = ?",
            (_clamp(score, 0.0, 1.0),),
            item_id,
            statement_id,
        )

    def get_rated_with_embeddings(
        self, statement_id: int, limit: int | None = None
    ) -> list[RatedEmbedding]:
        """Get rated items that have an embedding for the statement.

        Undecodable embeddings come back as None.
        """
        conn = self._ensure_connected()
        sql = """
            SELECT ur.content_item_id, ur.rating, cf.content_embedding
            FROM user_ratings ur
            JOIN content_features cf
                ON cf.content_item_id = ur.content_item_id
                AND cf.research_statement_id = ur.research_statement_id
            WHERE ur.research_statement_id = ?
                AND cf.content_embedding IS NOT NULL
            ORDER BY ur.content_item_id
        """
        params: tuple[int, ...] = (statement_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (statement_id, limit)

        return [
            RatedEmbedding(
                content_item_id=row["content_item_id"],
                rating=row["rating"],
                embedding=decode_vector(row["content_embedding"]),
            )
            for row in conn.execute(sql, params).fetchall()
        ]

    def set_feedback_score(self, item_id: int, statement_id: int, score: float) -> bool:
        """Persist a feedback score.

        Returns:
            True if a feature row was updated.
        """
        return self._update_feature(
            "set_feedback_score",
            "feedback_score = ?",
            (_clamp(score, 0.0, 1.0),),
            item_id,
            statement_id,
        )

    def get_missing_final_score(
        self, statement_id: int, limit: int, after_item_id: int = 0
    ) -> list[HybridCandidate]:
        """Get rows that have a similarity score but no final score."""
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT content_item_id, research_statement_id,
                keyword_score, similarity_score, feedback_score
            FROM content_features
            WHERE research_statement_id = ?
                AND similarity_score IS NOT NULL
                AND final_score IS NULL
                AND content_item_id > ?
            ORDER BY content_item_id
            LIMIT ?
            """,
            (statement_id, after_item_id, limit),
        ).fetchall()
        return [
            HybridCandidate(
                content_item_id=row["content_item_id"],
                research_statement_id=row["research_statement_id"],
                keyword_score=row["keyword_score"],
                similarity_score=row["similarity_score"],
                feedback_score=row["feedback_score"],
            )
            for row in rows
        ]

    def set_hybrid_score(
        self, item_id: int, statement_id: int, final: float, tier: int
    ) -> bool:
        """Persist a final score and its hybrid tier.

        Returns:
            True if a feature row was updated.
        """
        return self._update_feature(
            "set_hybrid_score",
            "final_score = ?, relevance_tier = ?",
            (_clamp(final, 0.0, 1.0), tier),
            item_id,
            statement_id,
        )

    def set_hybrid_scores(self, results: Sequence[HybridScoreUpdate]) -> BatchUpdateResult:
        """Persist a batch of final scores in a single transaction.

        Rows that match no feature row count as failed; any database error
        rolls back the whole batch.

        Raises:
            BatchUpdateError: If the transaction was rolled back.
        """
        if not results:
            return BatchUpdateResult()

        now = _now()
        completed = 0
        try:
            with self._transaction("set_hybrid_scores") as ctx:
                conn = self._ensure_connected()
                for result in results:
                    cursor = conn.execute(
                        """
                        UPDATE content_features
                        SET final_score = ?, relevance_tier = ?, updated_at = ?
                        WHERE content_item_id = ? AND research_statement_id = ?
                        """,
                        (
                            _clamp(result.final_score, 0.0, 1.0),
                            result.relevance_tier,
                            now,
                            result.content_item_id,
                            result.research_statement_id,
                        ),
                    )
                    completed += cursor.rowcount
                ctx.add_affected_rows(completed)
        except sqlite3.Error as e:
            raise BatchUpdateError("set_hybrid_scores", len(results), str(e)) from e

        failed = len(results) - completed
        self._metrics.record_batch(completed, failed)
        return BatchUpdateResult(completed=completed, failed=failed)

    def _update_feature(
        self,
        operation: str,
        assignments: str,
        values: tuple[float | int, ...],
        item_id: int,
        statement_id: int,
    ) -> bool:
        with self._transaction(operation) as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                f"""
                UPDATE content_features SET {assignments}, updated_at = ?
                WHERE content_item_id = ? AND research_statement_id = ?
                """,  # noqa: S608
                (*values, _now(), item_id, statement_id),
            )
            ctx.add_affected_rows(cursor.rowcount)
        self._metrics.record_score_written(cursor.rowcount)
        return cursor.rowcount > 0

    def reset_similarity_and_final(self, statement_id: int) -> int:
        """Clear similarity, final score and tier for a statement.

        Returns:
            Number of feature rows reset.
        """
        return self._reset(
            "reset_similarity_and_final",
            "similarity_score = NULL, final_score = NULL, relevance_tier = NULL",
            statement_id,
        )

    def reset_feedback(self, statement_id: int) -> int:
        """Clear feedback scores for a statement.

        Returns:
            Number of feature rows reset.
        """
        return self._reset("reset_feedback", "feedback_score = NULL", statement_id)

    def reset_keyword(self, statement_id: int) -> int:
        """Clear keyword scores for a statement, e.g. after keywords change.

        Returns:
            Number of feature rows reset.
        """
        return self._reset("reset_keyword", "keyword_score = NULL", statement_id)

    def _reset(self, operation: str, assignments: str, statement_id: int) -> int:
        with self._transaction(operation) as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                f"""
                UPDATE content_features SET {assignments}, updated_at = ?
                WHERE research_statement_id = ?
                """,  # noqa: S608
                (_now(), statement_id),
            )
            ctx.add_affected_rows(cursor.rowcount)
        self._metrics.record_reset(cursor.rowcount)
        self._log.info(
            "features_reset", op=operation, statement_id=statement_id, rows=cursor.rowcount
        )
        return cursor.rowcount

    def get_feature(self, item_id: int, statement_id: int) -> ContentFeature | None:
        """Get the scalar columns of one feature row."""
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT content_item_id, research_statement_id,
                content_embedding IS NOT NULL AS has_embedding,
                similarity_score, keyword_score, feedback_score,
                final_score, relevance_tier
            FROM content_features
            WHERE content_item_id = ? AND research_statement_id = ?
            """,
            (item_id, statement_id),
        ).fetchone()
        if row is None:
            return None
        return ContentFeature(
            content_item_id=row["content_item_id"],
            research_statement_id=row["research_statement_id"],
            has_embedding=bool(row["has_embedding"]),
            similarity_score=row["similarity_score"],
            keyword_score=row["keyword_score"],
            feedback_score=row["feedback_score"],
            final_score=row["final_score"],
            relevance_tier=row["relevance_tier"],
        )

    def get_final_scores(self, statement_id: int) -> list[float]:
        """Get all computed final scores for a statement."""
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT final_score FROM content_features
            WHERE research_statement_id = ? AND final_score IS NOT NULL
            ORDER BY final_score DESC
            """,
            (statement_id,),
        ).fetchall()
        return [row["final_score"] for row in rows]

    def get_counts(self, statement_id: int) -> FeatureCounts:
        """Count feature rows and how many still miss each output."""
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(content_embedding IS NOT NULL
                    AND similarity_score IS NULL), 0) AS missing_similarity,
                COALESCE(SUM(keyword_score IS NULL), 0) AS missing_keyword,
                COALESCE(SUM(content_embedding IS NOT NULL
                    AND feedback_score IS NULL), 0) AS missing_feedback,
                COALESCE(SUM(similarity_score IS NOT NULL
                    AND final_score IS NULL), 0) AS missing_final
            FROM content_features
            WHERE research_statement_id = ?
            """,
            (statement_id,),
        ).fetchone()
        missing_embedding = conn.execute(
            """
            SELECT COUNT(*) FROM content_items ci
            LEFT JOIN content_features cf
                ON cf.content_item_id = ci.id AND cf.research_statement_id = ?
            WHERE cf.id IS NULL OR cf.content_embedding IS NULL
            """,
            (statement_id,),
        ).fetchone()[0]

        return FeatureCounts(
            total=row["total"],
            missing_embedding=missing_embedding,
            missing_similarity=row["missing_similarity"],
            missing_keyword=row["missing_keyword"],
            missing_feedback=row["missing_feedback"],
            missing_final=row["missing_final"],
        )

    # ===== User Ratings =====

    def upsert_rating(self, item_id: int, statement_id: int, rating: int) -> int:
        """Record a user rating, clamped into 1..4.

        Returns:
            The stored rating.
        """
        stored = int(_clamp(rating, MIN_RATING, MAX_RATING))
        now = _now()
        with self._transaction("upsert_rating") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO user_ratings (
                    content_item_id, research_statement_id, rating,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (content_item_id, research_statement_id) DO UPDATE SET
                    rating = excluded.rating,
                    updated_at = excluded.updated_at
                """,
                (item_id, statement_id, stored, now, now),
            )
            ctx.add_affected_rows(cursor.rowcount)
        return stored

    def get_rating_stats(self, statement_id: int | None = None) -> RatingStats:
        """Count ratings per level, for one statement or all of them."""
        conn = self._ensure_connected()
        sql = """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(rating = 4), 0) AS very_relevant,
                COALESCE(SUM(rating = 3), 0) AS relevant,
                COALESCE(SUM(rating = 2), 0) AS weakly_relevant,
                COALESCE(SUM(rating = 1), 0) AS not_relevant
            FROM user_ratings
        """
        params: tuple[int, ...] = ()
        if statement_id is not None:
            sql += " WHERE research_statement_id = ?"
            params = (statement_id,)

        row = conn.execute(sql, params).fetchone()
        return RatingStats(**dict(row))

    # ===== AI Usage =====

    def record_ai_usage(
        self,
        tokens: int,
        estimated_cost: float,
        requests: int = 1,
        day: date | None = None,
    ) -> None:
        """Add provider usage to the counters of a UTC day."""
        key = (day or datetime.now(UTC).date()).isoformat()
        with self._transaction("record_ai_usage") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO ai_usage (
                    date, tokens_used, estimated_cost, requests_count, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (date) DO UPDATE SET
                    tokens_used = tokens_used + excluded.tokens_used,
                    estimated_cost = estimated_cost + excluded.estimated_cost,
                    requests_count = requests_count + excluded.requests_count,
                    updated_at = excluded.updated_at
                """,
                (key, tokens, estimated_cost, requests, _now()),
            )
            ctx.add_affected_rows(cursor.rowcount)

    def get_ai_usage(self, day: date | None = None) -> AiUsage | None:
        """Get provider usage for a UTC day (today by default)."""
        key = (day or datetime.now(UTC).date()).isoformat()
        conn = self._ensure_connected()
        row = conn.execute(
            """
            SELECT date, tokens_used, estimated_cost, requests_count
            FROM ai_usage WHERE date = ?
            """,
            (key,),
        ).fetchone()
        return AiUsage(**dict(row)) if row is not None else None
