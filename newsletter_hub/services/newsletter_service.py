"""
Newsletter service: business logic for newsletter management operations.

Handles registration, status changes, manual feed fetches and OPML
import/export.
"""

import logging

from fastapi import HTTPException

from ..config import config
from ..database import Database, DuplicateEmailError
from ..database.models import DBArticle, DBNewsletter
from ..exceptions import (
    BadRequestError,
    DuplicateNewsletterError,
    FeedUnavailableError,
    newsletter_or_404,
)
from ..feeds import FeedFetchError
from ..opml import OPMLParseError, OPMLSubscription, generate_opml
from ..schemas import OPMLImportResponse
from ..url_validator import SSRFError, validate_feed_url
from .ingestion_service import IngestionService

logger = logging.getLogger(__name__)


class NewsletterService:
    """Service for newsletter-related business logic."""

    def __init__(self, db: Database, ingestion: IngestionService | None = None):
        self.db = db
        self.ingestion = ingestion

    def _require_ingestion(self) -> IngestionService:
        if self.ingestion is None:
            raise HTTPException(status_code=500, detail="Feed parser not initialized")
        return self.ingestion

    # ─────────────────────────────────────────────────────────────
    # Newsletter Management
    # ─────────────────────────────────────────────────────────────

    def list_newsletters(self) -> list[DBNewsletter]:
        """List all newsletters."""
        return self.db.get_newsletters()

    def create(self, name: str, email: str, rss_url: str | None = None) -> DBNewsletter:
        """
        Register a newsletter.

        Raises:
            HTTPException: 400 for an unusable feed URL, 409 for a duplicate email
        """
        if rss_url:
            try:
                rss_url = validate_feed_url(
                    rss_url, resolve_dns=False, allow_private=config.ALLOW_PRIVATE_FEED_URLS
                )
            except SSRFError as e:
                raise BadRequestError(f"Invalid RSS URL: {e}")

        try:
            newsletter_id = self.db.add_newsletter(name=name, email=email, rss_url=rss_url)
        except DuplicateEmailError:
            raise DuplicateNewsletterError()

        return newsletter_or_404(self.db.get_newsletter(newsletter_id))

    def set_active(self, newsletter_id: int, active: bool) -> DBNewsletter:
        """Enable or disable polling for a newsletter."""
        newsletter_or_404(self.db.get_newsletter(newsletter_id))
        self.db.set_newsletter_active(newsletter_id, active)
        return newsletter_or_404(self.db.get_newsletter(newsletter_id))

    def delete(self, newsletter_id: int) -> None:
        """Delete a newsletter. Its articles stay, detached."""
        newsletter_or_404(self.db.get_newsletter(newsletter_id))
        self.db.delete_newsletter(newsletter_id)

    # ─────────────────────────────────────────────────────────────
    # Fetch now
    # ─────────────────────────────────────────────────────────────

    async def fetch_rss(self, newsletter_id: int) -> list[DBArticle]:
        """
        Fetch a newsletter's feed immediately.

        Returns:
            The newly created articles (empty if nothing was new)

        Raises:
            HTTPException: 404 unknown newsletter, 400 no feed URL, 502 fetch failure
        """
        newsletter = newsletter_or_404(self.db.get_newsletter(newsletter_id))
        if not newsletter.rss_url:
            raise BadRequestError("Newsletter has no RSS URL")

        try:
            return await self._require_ingestion().fetch_newsletter(newsletter)
        except FeedFetchError as e:
            raise FeedUnavailableError(e.reason)

    # ─────────────────────────────────────────────────────────────
    # OPML Import/Export
    # ─────────────────────────────────────────────────────────────

    async def import_opml(self, opml_content: str | bytes) -> OPMLImportResponse:
        """
        Import newsletters from OPML content.

        Raises:
            HTTPException: If the document is not valid OPML or lists no feeds
        """
        ingestion = self._require_ingestion()
        try:
            report = await ingestion.import_opml(opml_content)
        except OPMLParseError as e:
            raise BadRequestError(f"Invalid OPML: {e}")

        if report.total == 0:
            raise BadRequestError("No feeds found in OPML")

        logger.info(
            f"OPML import finished: {report.imported} imported, {report.failed} failed, "
            f"{report.articles_created} articles created"
        )
        return report

    def export_opml(self, title: str = "Newsletter Hub Subscriptions") -> str:
        """Export newsletters that have a feed URL as OPML."""
        subscriptions = [
            OPMLSubscription(url=n.rss_url, title=n.name)
            for n in self.db.get_newsletters()
            if n.rss_url
        ]
        return generate_opml(subscriptions, title=title)
