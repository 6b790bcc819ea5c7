"""
Newsletter repository - CRUD operations for newsletters.
"""

import sqlite3
from datetime import datetime, timezone

from .connection import DatabaseConnection
from .converters import format_timestamp, row_to_newsletter
from .models import DBNewsletter


class DuplicateEmailError(ValueError):
    """Raised when a newsletter email is already registered."""


class NewsletterRepository:
    """Repository for newsletter operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(
        self,
        name: str,
        email: str,
        rss_url: str | None = None,
        active: bool = True
    ) -> int:
        """Add a new newsletter. Returns newsletter ID."""
        with self._db.conn() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO newsletters (name, email, rss_url, active) VALUES (?, ?, ?, ?)",
                    (name, email, rss_url, active)
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEmailError(f"Newsletter email already exists: {email}") from e
            return cursor.lastrowid

    def get(self, newsletter_id: int) -> DBNewsletter | None:
        """Get single newsletter by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE id = ?", (newsletter_id,)
            ).fetchone()
            return row_to_newsletter(row) if row else None

    def get_by_rss_url(self, rss_url: str) -> DBNewsletter | None:
        """Get newsletter by feed URL (case-insensitive)."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE lower(rss_url) = lower(?) ORDER BY id LIMIT 1",
                (rss_url,)
            ).fetchone()
            return row_to_newsletter(row) if row else None

    def get_all(self) -> list[DBNewsletter]:
        """Get all newsletters ordered by name."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM newsletters ORDER BY name COLLATE NOCASE, id"
            ).fetchall()
            return [row_to_newsletter(row) for row in rows]

    def get_pollable(self) -> list[DBNewsletter]:
        """Get active newsletters that have a feed URL."""
        with self._db.conn() as conn:
            rows = conn.execute(
                """SELECT * FROM newsletters
                   WHERE active = 1 AND rss_url IS NOT NULL AND rss_url != ''
                   ORDER BY id"""
            ).fetchall()
            return [row_to_newsletter(row) for row in rows]

    def update(
        self,
        newsletter_id: int,
        name: str | None = None,
        rss_url: str | None = None,
    ):
        """Update newsletter name or feed URL."""
        with self._db.conn() as conn:
            if name is not None:
                conn.execute(
                    "UPDATE newsletters SET name = ? WHERE id = ?", (name, newsletter_id)
                )
            if rss_url is not None:
                conn.execute(
                    "UPDATE newsletters SET rss_url = ? WHERE id = ?", (rss_url, newsletter_id)
                )

    def set_active(self, newsletter_id: int, active: bool):
        """Toggle whether the newsletter is polled."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE newsletters SET active = ? WHERE id = ?", (active, newsletter_id)
            )

    def update_fetched(self, newsletter_id: int, error: str | None = None):
        """Record the outcome of the latest feed fetch."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE newsletters SET last_fetched = ?, fetch_error = ? WHERE id = ?",
                (format_timestamp(datetime.now(timezone.utc)), error, newsletter_id)
            )

    def delete(self, newsletter_id: int):
        """Delete a newsletter. Its articles are kept and detached."""
        with self._db.conn() as conn:
            conn.execute("DELETE FROM newsletters WHERE id = ?", (newsletter_id,))
