"""
Database facade - provides unified access to all repositories.
"""

from datetime import datetime
from pathlib import Path

from .connection import DatabaseConnection
from .article_repository import ArticleRepository
from .newsletter_repository import NewsletterRepository
from .models import DBArticle, DBNewsletter


class Database:
    """
    Unified database access facade.

    Delegates to the specialized repositories.
    """

    def __init__(self, db_path: Path):
        self._connection = DatabaseConnection(db_path)

        self.articles = ArticleRepository(self._connection)
        self.newsletters = NewsletterRepository(self._connection)

    # ─────────────────────────────────────────────────────────────
    # Newsletter operations (delegated to NewsletterRepository)
    # ─────────────────────────────────────────────────────────────

    def add_newsletter(
        self,
        name: str,
        email: str,
        rss_url: str | None = None,
        active: bool = True
    ) -> int:
        return self.newsletters.add(name, email, rss_url, active)

    def get_newsletter(self, newsletter_id: int) -> DBNewsletter | None:
        return self.newsletters.get(newsletter_id)

    def get_newsletter_by_rss_url(self, rss_url: str) -> DBNewsletter | None:
        return self.newsletters.get_by_rss_url(rss_url)

    def get_newsletters(self) -> list[DBNewsletter]:
        return self.newsletters.get_all()

    def get_pollable_newsletters(self) -> list[DBNewsletter]:
        return self.newsletters.get_pollable()

    def update_newsletter(
        self,
        newsletter_id: int,
        name: str | None = None,
        rss_url: str | None = None
    ):
        self.newsletters.update(newsletter_id, name=name, rss_url=rss_url)

    def set_newsletter_active(self, newsletter_id: int, active: bool):
        self.newsletters.set_active(newsletter_id, active)

    def update_newsletter_fetched(self, newsletter_id: int, error: str | None = None):
        self.newsletters.update_fetched(newsletter_id, error)

    def delete_newsletter(self, newsletter_id: int):
        self.newsletters.delete(newsletter_id)

    # ─────────────────────────────────────────────────────────────
    # Article operations (delegated to ArticleRepository)
    # ─────────────────────────────────────────────────────────────

    def add_article(
        self,
        newsletter_id: int | None,
        title: str,
        content: str,
        thumbnail_url: str | None = None,
        published_at: datetime | None = None,
        external_id: str | None = None,
        link: str | None = None,
    ) -> int | None:
        return self.articles.add(
            newsletter_id, title, content, thumbnail_url, published_at, external_id, link
        )

    def get_article(self, article_id: int) -> DBArticle | None:
        return self.articles.get(article_id)

    def get_article_by_external_id(
        self, newsletter_id: int, external_id: str
    ) -> DBArticle | None:
        return self.articles.get_by_external_id(newsletter_id, external_id)

    def get_articles_page(
        self,
        limit: int,
        offset: int = 0,
        max_id: int | None = None,
        archived: bool | None = None,
    ) -> list[DBArticle]:
        return self.articles.get_page(limit, offset, max_id=max_id, archived=archived)

    def count_articles(self, max_id: int | None = None, archived: bool | None = None) -> int:
        return self.articles.count(max_id=max_id, archived=archived)

    def get_visible_articles(self, now: datetime, limit: int = 50) -> list[DBArticle]:
        return self.articles.get_visible(now, limit)

    def set_article_published(self, article_id: int, published: bool):
        self.articles.set_published(article_id, published)

    def set_article_publish_until(self, article_id: int, publish_until: datetime | None):
        self.articles.set_publish_until(article_id, publish_until)

    def set_article_archived(self, article_id: int, archived: bool):
        self.articles.set_archived(article_id, archived)
