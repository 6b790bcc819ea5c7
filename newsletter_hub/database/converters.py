"""
Database row converters - convert SQLite rows to dataclasses.
"""

import sqlite3
from datetime import datetime, timezone

from .models import DBArticle, DBNewsletter


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored ISO timestamp, treating naive values as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp for storage (UTC, ISO 8601)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def row_to_article(row: sqlite3.Row) -> DBArticle:
    """Convert a database row to a DBArticle."""
    created_at = parse_timestamp(row["created_at"]) or datetime.now(timezone.utc)

    return DBArticle(
        id=row["id"],
        newsletter_id=row["newsletter_id"],
        title=row["title"],
        content=row["content"],
        thumbnail_url=row["thumbnail_url"],
        published=bool(row["published"]),
        published_at=parse_timestamp(row["published_at"]),
        publish_until=parse_timestamp(row["publish_until"]),
        archived=bool(row["archived"]),
        external_id=row["external_id"],
        link=row["link"],
        created_at=created_at,
    )


def row_to_newsletter(row: sqlite3.Row) -> DBNewsletter:
    """Convert a database row to a DBNewsletter."""
    return DBNewsletter(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        rss_url=row["rss_url"],
        active=bool(row["active"]),
        last_fetched=parse_timestamp(row["last_fetched"]),
        fetch_error=row["fetch_error"],
    )
