"""SQLite schema migrations for the feature store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from hybridrank.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 2


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
        down_sql: SQL to rollback the migration.
    """

    version: int
    description: str
    up_sql: str
    down_sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Content items, research statements, features and ratings",
        up_sql="""
CREATE TABLE IF NOT EXISTS content_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_type TEXT NOT NULL,
    source_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    summary TEXT,
    page_text TEXT,
    raw_content TEXT,
    url TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (source_type, source_id)
);

CREATE TABLE IF NOT EXISTS research_statements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    statement TEXT NOT NULL,
    embedding BLOB,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_statements_active ON research_statements(is_active);

-- Ordered keyword phrases; polarity separates positive from negative lists
CREATE TABLE IF NOT EXISTS statement_keywords (
    statement_id INTEGER NOT NULL
        REFERENCES research_statements(id) ON DELETE CASCADE,
    polarity TEXT NOT NULL CHECK (polarity IN ('positive', 'negative')),
    position INTEGER NOT NULL,
    keyword TEXT NOT NULL,
    PRIMARY KEY (statement_id, polarity, position)
);

CREATE TABLE IF NOT EXISTS content_features (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content_item_id INTEGER NOT NULL
        REFERENCES content_items(id) ON DELETE CASCADE,
    research_statement_id INTEGER NOT NULL
        REFERENCES research_statements(id) ON DELETE CASCADE,
    content_embedding BLOB,
    similarity_score REAL,
    keyword_score REAL,
    feedback_score REAL,
    final_score REAL,
    relevance_tier INTEGER CHECK (relevance_tier BETWEEN 1 AND 4),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (content_item_id, research_statement_id)
);
CREATE INDEX IF NOT EXISTS idx_features_statement_item
    ON content_features(research_statement_id, content_item_id);
CREATE INDEX IF NOT EXISTS idx_features_final_score
    ON content_features(research_statement_id, final_score DESC);

CREATE TABLE IF NOT EXISTS user_ratings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content_item_id INTEGER NOT NULL
        REFERENCES content_items(id) ON DELETE CASCADE,
    research_statement_id INTEGER NOT NULL
        REFERENCES research_statements(id) ON DELETE CASCADE,
    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 4),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (content_item_id, research_statement_id)
);
CREATE INDEX IF NOT EXISTS idx_ratings_statement
    ON user_ratings(research_statement_id);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_ratings_statement;
DROP TABLE IF EXISTS user_ratings;
DROP INDEX IF EXISTS idx_features_final_score;
DROP INDEX IF EXISTS idx_features_statement_item;
DROP TABLE IF EXISTS content_features;
DROP TABLE IF EXISTS statement_keywords;
DROP INDEX IF EXISTS idx_statements_active;
DROP TABLE IF EXISTS research_statements;
DROP TABLE IF EXISTS content_items;
""",
    ),
    Migration(
        version=2,
        description="Daily embedding provider usage",
        up_sql="""
CREATE TABLE IF NOT EXISTS ai_usage (
    date TEXT PRIMARY KEY,
    tokens_used INTEGER NOT NULL DEFAULT 0,
    estimated_cost REAL NOT NULL DEFAULT 0,
    requests_count INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL
);
""",
        down_sql="""
DROP TABLE IF EXISTS ai_usage;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations newer than ``current_version``, in order."""
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Manages SQLite schema migrations."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number, or 0 if no migrations applied.
        """
        self.ensure_version_table()
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration script fails.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.debug("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []
        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                self._conn.executescript(migration.up_sql)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

            applied.append(migration.version)
            self._log.info("migration_applied", version=migration.version)

        return applied

    def rollback_to(self, target_version: int) -> list[int]:
        """Roll back applied migrations down to ``target_version``.

        Args:
            target_version: The version to roll back to.

        Returns:
            Version numbers that were rolled back, newest first.

        Raises:
            ValueError: If target version is negative.
            MigrationError: If a rollback script fails.
        """
        if target_version < 0:
            msg = f"Invalid target version: {target_version}"
            raise ValueError(msg)

        by_version = {m.version: m for m in MIGRATIONS}
        rolled_back: list[int] = []

        while (current := self.get_current_version()) > target_version:
            migration = by_version.get(current)
            if migration is None:
                break

            self._log.info(
                "rolling_back_migration",
                version=migration.version,
                description=migration.description,
            )
            try:
                self._conn.executescript(migration.down_sql)
                self._conn.execute(
                    "DELETE FROM schema_version WHERE version = ?",
                    (migration.version,),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._log.error(
                    "rollback_failed", version=migration.version, error=str(e)
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

            rolled_back.append(migration.version)
            self._log.info("migration_rolled_back", version=migration.version)

        return rolled_back

    def get_applied_migrations(self) -> list[dict[str, str | int]]:
        """Get list of applied migrations.

        Returns:
            List of dicts with version, applied_at, and description.
        """
        self.ensure_version_table()
        cursor = self._conn.execute(
            """
            SELECT version, applied_at, description
            FROM schema_version
            ORDER BY version
            """
        )
        return [
            {"version": row[0], "applied_at": row[1], "description": row[2]}
            for row in cursor.fetchall()
        ]
