"""
Article service: business logic for listing and curating articles.

Handles pagination, publish/archive toggles and visibility expiry.
"""

from datetime import datetime, timezone

from ..database import Database
from ..database.models import DBArticle
from ..exceptions import article_or_404
from ..schemas import ArticleResponse, ArticlesPageResponse

PAGE_SIZE = 9


class ArticleService:
    """Service for article-related business logic."""

    def __init__(self, db: Database):
        self.db = db

    def list_page(
        self,
        page: int = 1,
        max_id: int | None = None,
        archived: bool | None = None,
        page_size: int = PAGE_SIZE,
    ) -> ArticlesPageResponse:
        """
        Get one page of articles, newest first.

        Args:
            page: 1-based page number
            max_id: Only list articles with id <= max_id, so that articles
                ingested while paging do not shift later pages
            archived: Filter by archived flag (None for all)
            page_size: Articles per page

        Returns:
            The page with the total count and whether more pages exist
        """
        offset = (page - 1) * page_size
        articles = self.db.get_articles_page(
            limit=page_size, offset=offset, max_id=max_id, archived=archived
        )
        total = self.db.count_articles(max_id=max_id, archived=archived)

        return ArticlesPageResponse(
            articles=[ArticleResponse.from_db(a) for a in articles],
            total_count=total,
            has_more=offset + len(articles) < total,
        )

    def get_article(self, article_id: int) -> DBArticle:
        """Get an article or raise 404."""
        return article_or_404(self.db.get_article(article_id))

    def toggle_published(self, article_id: int) -> DBArticle:
        """Flip the published flag. Returns the updated article."""
        article = self.get_article(article_id)
        self.db.set_article_published(article_id, not article.published)
        return self.get_article(article_id)

    def toggle_archived(self, article_id: int) -> DBArticle:
        """Flip the archived flag. Returns the updated article."""
        article = self.get_article(article_id)
        self.db.set_article_archived(article_id, not article.archived)
        return self.get_article(article_id)

    def set_publish_until(self, article_id: int, publish_until: datetime | None) -> DBArticle:
        """Set or clear the date after which a published article is hidden."""
        self.get_article(article_id)
        self.db.set_article_publish_until(article_id, publish_until)
        return self.get_article(article_id)

    def visible_articles(self, limit: int = 50) -> list[DBArticle]:
        """Articles currently visible to readers of the public feed."""
        return self.db.get_visible_articles(datetime.now(timezone.utc), limit)
