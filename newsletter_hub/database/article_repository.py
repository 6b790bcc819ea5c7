"""
Article repository - CRUD operations for articles.
"""

import sqlite3
from datetime import datetime, timezone

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_article
from .models import DBArticle


class ArticleRepository:
    """Repository for article operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
        self,
        newsletter_id: int | None,
        title: str,
        content: str,
        thumbnail_url: str | None = None,
        published_at: datetime | None = None,
        external_id: str | None = None,
        link: str | None = None,
    ) -> int | None:
        """Add a new unpublished article. Returns article ID or None if duplicate."""
        with self._db.conn() as conn:
            try:
                cursor = conn.execute(
                    """INSERT INTO articles
                       (newsletter_id, title, content, thumbnail_url, published_at,
                        external_id, link, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (newsletter_id, title, content, thumbnail_url,
                     format_timestamp(published_at), external_id, link,
                     format_timestamp(datetime.now(timezone.utc)))
                )
                return cursor.lastrowid
            except sqlite3.IntegrityError:
                # Duplicate (newsletter_id, external_id)
                return None

    def get(self, article_id: int) -> DBArticle | None:
        """Get single article by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            return row_to_article(row) if row else None

    def get_by_external_id(self, newsletter_id: int, external_id: str) -> DBArticle | None:
        """Get the article ingested from a given feed entry."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE newsletter_id = ? AND external_id = ?",
                (newsletter_id, external_id)
            ).fetchone()
            return row_to_article(row) if row else None

    def _filters(
        self,
        max_id: int | None,
        archived: bool | None,
    ) -> tuple[str, list]:
        clause = " WHERE 1=1"
        params: list = []
        if max_id is not None:
            clause += " AND id <= ?"
            params.append(max_id)
        if archived is not None:
            clause += " AND archived = ?"
            params.append(archived)
        return clause, params

    def get_page(
        self,
        limit: int,
        offset: int = 0,
        max_id: int | None = None,
        archived: bool | None = None,
    ) -> list[DBArticle]:
        """Get articles newest first. max_id pins the listing to a snapshot."""
        clause, params = self._filters(max_id, archived)
        query = f"SELECT * FROM articles{clause} ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._db.conn() as conn:
            rows = conn.execute(query, params).fetchall()
            return [row_to_article(row) for row in rows]

    def count(self, max_id: int | None = None, archived: bool | None = None) -> int:
        """Count articles matching the listing filters."""
        clause, params = self._filters(max_id, archived)
        with self._db.conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM articles{clause}", params).fetchone()
            return row["n"]

    def get_visible(self, now: datetime, limit: int = 50) -> list[DBArticle]:
        """Get published, unarchived articles whose publish-until is in the future."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM articles
                   WHERE published = 1 AND archived = 0
                     AND (publish_until IS NULL OR publish_until > ?)
                   ORDER BY published_at DESC NULLS LAST, id DESC
                   LIMIT ?""",
                (format_timestamp(now), limit)
            ).fetchall()
            return [row_to_article(row) for row in rows]

    def set_published(self, article_id: int, published: bool):
        """Publish or unpublish. Publishing stamps published_at if it is unset."""
        with self._db.conn() as conn:
            if published:
                conn.execute(
                    """UPDATE articles SET published = 1,
                       published_at = COALESCE(published_at, ?)
                       WHERE id = ?""",
                    (format_timestamp(datetime.now(timezone.utc)), article_id)
                )
            else:
                conn.execute(
                    "UPDATE articles SET published = 0 WHERE id = ?", (article_id,)
                )

    def set_publish_until(self, article_id: int, publish_until: datetime | None):
        """Set or clear the visibility expiry."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE articles SET publish_until = ? WHERE id = ?",
                (format_timestamp(publish_until), article_id)
            )

    def set_archived(self, article_id: int, archived: bool):
        """Archive or unarchive an article."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE articles SET archived = ? WHERE id = ?", (archived, article_id)
            )
