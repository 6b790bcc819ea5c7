"""
Article routes: paginated listing, detail, publish/archive toggles.
"""

from fastapi import APIRouter, Query

from ..schemas import ArticleResponse, ArticlesPageResponse, UpdateArticleRequest
from ..services import ArticleServiceDep

router = APIRouter(prefix="/api/articles", tags=["articles"])


@router.get("")
async def list_articles(
    service: ArticleServiceDep,
    page: int = Query(default=1, ge=1),
    max_id: int | None = Query(default=None, alias="maxId", ge=1),
    archived: bool | None = None,
) -> ArticlesPageResponse:
    """Get a page of articles, newest first.

    Pass the highest id from page 1 as maxId when requesting later pages so
    that newly ingested articles do not shift the listing.
    """
    return service.list_page(page=page, max_id=max_id, archived=archived)


@router.get("/{article_id}")
async def get_article(article_id: int, service: ArticleServiceDep) -> ArticleResponse:
    """Get a single article."""
    return ArticleResponse.from_db(service.get_article(article_id))


@router.patch("/{article_id}")
async def update_article(
    article_id: int,
    request: UpdateArticleRequest,
    service: ArticleServiceDep
) -> ArticleResponse:
    """Set or clear an article's publish-until date."""
    article = service.set_publish_until(article_id, request.publish_until)
    return ArticleResponse.from_db(article)


@router.post("/{article_id}/publish")
async def toggle_publish(article_id: int, service: ArticleServiceDep) -> ArticleResponse:
    """Publish an unpublished article, or unpublish a published one."""
    return ArticleResponse.from_db(service.toggle_published(article_id))


@router.post("/{article_id}/archive")
async def toggle_archive(article_id: int, service: ArticleServiceDep) -> ArticleResponse:
    """Archive an article, or restore an archived one."""
    return ArticleResponse.from_db(service.toggle_archived(article_id))
