"""
Database models - dataclasses for database entities.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class DBNewsletter:
    id: int
    name: str
    email: str
    rss_url: str | None
    active: bool
    last_fetched: datetime | None = None
    fetch_error: str | None = None


@dataclass
class DBArticle:
    id: int
    newsletter_id: int | None
    title: str
    content: str
    published: bool
    archived: bool
    created_at: datetime
    thumbnail_url: str | None = None
    published_at: datetime | None = None
    publish_until: datetime | None = None
    external_id: str | None = None  # Feed entry id, None for manual articles
    link: str | None = None

    def is_visible(self, now: datetime) -> bool:
        """Published, not archived, and not past its publish-until date."""
        if not self.published or self.archived:
            return False
        return self.publish_until is None or self.publish_until > now
