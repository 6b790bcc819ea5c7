"""
Database connection management and schema initialization.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class DatabaseConnection:
    """Manages database connection and schema."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def conn(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with row factory."""
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self.conn() as connection:
            connection.executescript("""
                CREATE TABLE IF NOT EXISTS newsletters (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT UNIQUE NOT NULL,
                    rss_url TEXT,
                    active BOOLEAN NOT NULL DEFAULT TRUE,
                    last_fetched TIMESTAMP,
                    fetch_error TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    newsletter_id INTEGER REFERENCES newsletters(id) ON DELETE SET NULL,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    thumbnail_url TEXT,
                    published BOOLEAN NOT NULL DEFAULT FALSE,
                    published_at TIMESTAMP,
                    publish_until TIMESTAMP,
                    archived BOOLEAN NOT NULL DEFAULT FALSE,
                    external_id TEXT,
                    link TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_articles_external
                    ON articles(newsletter_id, external_id);
                CREATE INDEX IF NOT EXISTS idx_articles_newsletter ON articles(newsletter_id);
                CREATE INDEX IF NOT EXISTS idx_articles_published
                    ON articles(published, archived, publish_until);
                CREATE INDEX IF NOT EXISTS idx_newsletters_rss ON newsletters(rss_url);
            """)
