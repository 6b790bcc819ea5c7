"""
Newsletter routes: management, fetch-now, OPML import/export.
"""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response

from ..exceptions import BadRequestError
from ..rate_limit import limit_feed_fetches
from ..schemas import (
    ArticleResponse,
    CreateNewsletterRequest,
    NewsletterResponse,
    OPMLImportResponse,
    UpdateNewsletterStatusRequest,
)
from ..services import NewsletterServiceDep

router = APIRouter(prefix="/api/newsletters", tags=["newsletters"])

MAX_OPML_BYTES = 5 * 1024 * 1024


# ─────────────────────────────────────────────────────────────
# OPML Import/Export (static paths first)
# ─────────────────────────────────────────────────────────────

@router.post("/import-opml")
@limit_feed_fetches
async def import_opml(
    request: Request,
    service: NewsletterServiceDep,
    file: UploadFile = File(...),
) -> OPMLImportResponse:
    """
    Import newsletters from an uploaded OPML file.

    Each listed feed is fetched and ingested on its own; feeds that fail are
    reported in the results without affecting the others.
    """
    content = await file.read(MAX_OPML_BYTES + 1)
    if len(content) > MAX_OPML_BYTES:
        raise HTTPException(status_code=413, detail="OPML file too large")
    if not content.strip():
        raise BadRequestError("Uploaded file is empty")

    return await service.import_opml(content)


@router.get("/export-opml")
async def export_opml(service: NewsletterServiceDep) -> Response:
    """Export newsletters with feeds as an OPML document."""
    return Response(
        content=service.export_opml(),
        media_type="text/x-opml",
        headers={"Content-Disposition": 'attachment; filename="newsletters.opml"'},
    )


# ─────────────────────────────────────────────────────────────
# Newsletter Management
# ─────────────────────────────────────────────────────────────

@router.get("")
async def list_newsletters(service: NewsletterServiceDep) -> list[NewsletterResponse]:
    """List all newsletters."""
    return [NewsletterResponse.from_db(n) for n in service.list_newsletters()]


@router.post("")
async def create_newsletter(
    request: CreateNewsletterRequest,
    service: NewsletterServiceDep
) -> NewsletterResponse:
    """Register a newsletter, optionally with an RSS feed."""
    newsletter = service.create(request.name, request.email, request.rss_url)
    return NewsletterResponse.from_db(newsletter)


@router.patch("/{newsletter_id}/status")
async def update_status(
    newsletter_id: int,
    request: UpdateNewsletterStatusRequest,
    service: NewsletterServiceDep
) -> NewsletterResponse:
    """Enable or disable a newsletter."""
    return NewsletterResponse.from_db(service.set_active(newsletter_id, request.active))


@router.post("/{newsletter_id}/fetch-rss")
@limit_feed_fetches
async def fetch_rss(
    request: Request,
    newsletter_id: int,
    service: NewsletterServiceDep,
) -> list[ArticleResponse]:
    """Fetch the newsletter's feed now. Returns the articles that were new."""
    articles = await service.fetch_rss(newsletter_id)
    return [ArticleResponse.from_db(a) for a in articles]


@router.delete("/{newsletter_id}")
async def delete_newsletter(newsletter_id: int, service: NewsletterServiceDep) -> dict:
    """Remove a newsletter."""
    service.delete(newsletter_id)
    return {"success": True}
