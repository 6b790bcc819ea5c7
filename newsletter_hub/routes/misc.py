"""
Miscellaneous routes: health check and the public RSS feed.
"""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from .. import __version__
from ..config import config, state
from ..rss import generate_rss
from ..services import ArticleServiceDep

router = APIRouter(tags=["misc"])


@router.get("/status")
async def health_check() -> dict:
    """API health check."""
    return {
        "status": "ok",
        "version": __version__,
        "polling_enabled": bool(state.scheduler and state.scheduler.running),
        "live_clients": len(state.broadcaster) if state.broadcaster else 0,
    }


@router.get("/api/rss")
async def public_feed(
    service: ArticleServiceDep,
    limit: int = Query(default=50, ge=1, le=200)
) -> Response:
    """RSS feed of published articles that are not archived or expired."""
    xml = generate_rss(service.visible_articles(limit), base_url=config.PUBLIC_BASE_URL)
    return Response(content=xml, media_type="application/rss+xml")
