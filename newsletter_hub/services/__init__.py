"""
Service layer for business logic.

Services encapsulate business logic, keeping routes as thin HTTP adapters.
Each service receives its dependencies via constructor injection.

Usage in routes:
    from ..services import ArticleServiceDep

    @router.get("/api/articles")
    async def list_articles(service: ArticleServiceDep, page: int = 1):
        return service.list_page(page)
"""

from typing import Annotated

from fastapi import Depends

from ..config import state, get_db
from ..database import Database

from .article_service import ArticleService, PAGE_SIZE
from .ingestion_service import IngestionService, PollSummary
from .newsletter_service import NewsletterService

__all__ = [
    # Services
    "ArticleService",
    "IngestionService",
    "NewsletterService",
    "PollSummary",
    "PAGE_SIZE",
    # Dependency factories
    "get_article_service",
    "get_ingestion_service",
    "get_newsletter_service",
    # Type aliases for dependency injection
    "ArticleServiceDep",
    "NewsletterServiceDep",
]


def get_ingestion_service(db: Database) -> IngestionService | None:
    """Build an IngestionService from application state, if a feed parser is set."""
    if not state.feed_parser:
        return None
    return IngestionService(
        db=db,
        feed_parser=state.feed_parser,
        broadcaster=state.broadcaster,
    )


def get_article_service(db: Annotated[Database, Depends(get_db)]) -> ArticleService:
    """Dependency to get ArticleService instance."""
    return ArticleService(db=db)


def get_newsletter_service(db: Annotated[Database, Depends(get_db)]) -> NewsletterService:
    """Dependency to get NewsletterService instance."""
    return NewsletterService(db=db, ingestion=get_ingestion_service(db))


ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]
NewsletterServiceDep = Annotated[NewsletterService, Depends(get_newsletter_service)]
