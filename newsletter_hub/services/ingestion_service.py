"""
Ingestion service: turns feed entries into articles.

Used by the HTTP layer (manual fetch, OPML import) and by the polling
scheduler. Every article it creates is announced to live clients.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..database import Database
from ..database.models import DBArticle, DBNewsletter
from ..feeds import FeedEntry, FeedFetchError
from ..opml import OPMLSubscription, parse_opml
from ..schemas import OPMLImportResponse, OPMLImportResult, new_article_message

if TYPE_CHECKING:
    from ..broadcaster import ConnectionRegistry
    from ..feeds import FeedParser

logger = logging.getLogger(__name__)


def placeholder_email(feed_url: str) -> str:
    """Stable unique email for newsletters created from OPML (which carries none)."""
    digest = hashlib.sha256(feed_url.strip().lower().encode("utf-8")).hexdigest()[:16]
    return f"opml-{digest}@imported.invalid"


@dataclass
class PollSummary:
    """Outcome of one polling pass over the active newsletters."""
    polled: int = 0
    articles_created: int = 0
    errors: dict[int, str] = field(default_factory=dict)


class IngestionService:
    """Fetches feeds, de-duplicates entries and stores new articles."""

    def __init__(
        self,
        db: Database,
        feed_parser: "FeedParser",
        broadcaster: "ConnectionRegistry | None" = None,
    ):
        self.db = db
        self.feed_parser = feed_parser
        self.broadcaster = broadcaster

    # ─────────────────────────────────────────────────────────────
    # Entries -> articles
    # ─────────────────────────────────────────────────────────────

    def ingest_entries(self, newsletter_id: int, entries: list[FeedEntry]) -> list[DBArticle]:
        """
        Store entries not seen before for this newsletter.

        Entries already recorded (same external id) are skipped without
        updating them. Entries without a title or identifier are skipped.
        Returns the created articles in feed order.
        """
        created: list[DBArticle] = []

        for entry in entries:
            if not entry.title or not entry.external_id:
                logger.info(
                    f"Skipping malformed entry for newsletter {newsletter_id}: "
                    f"title={entry.title!r} id={entry.external_id!r}"
                )
                continue

            if self.db.get_article_by_external_id(newsletter_id, entry.external_id):
                continue

            article_id = self.db.add_article(
                newsletter_id=newsletter_id,
                title=entry.title,
                content=entry.content,
                thumbnail_url=entry.thumbnail_url,
                published_at=entry.published,
                external_id=entry.external_id,
                link=entry.link,
            )
            if article_id is None:
                continue

            article = self.db.get_article(article_id)
            if article:
                created.append(article)
                self._announce(article)

        if created:
            logger.info(f"Created {len(created)} articles for newsletter {newsletter_id}")
        return created

    def _announce(self, article: DBArticle) -> None:
        if self.broadcaster is not None:
            self.broadcaster.broadcast(new_article_message(article))

    # ─────────────────────────────────────────────────────────────
    # Single newsletter
    # ─────────────────────────────────────────────────────────────

    async def fetch_newsletter(self, newsletter: DBNewsletter) -> list[DBArticle]:
        """
        Fetch a newsletter's feed now and store new entries.

        Raises:
            ValueError: If the newsletter has no feed URL
            FeedFetchError: If the feed cannot be fetched or parsed
        """
        if not newsletter.rss_url:
            raise ValueError(f"Newsletter {newsletter.id} has no RSS URL")

        try:
            feed = await self.feed_parser.fetch(newsletter.rss_url)
        except FeedFetchError as e:
            self.db.update_newsletter_fetched(newsletter.id, error=e.reason)
            raise

        created = self.ingest_entries(newsletter.id, feed.entries)
        self.db.update_newsletter_fetched(newsletter.id)
        return created

    async def poll_active(self) -> PollSummary:
        """Fetch every active newsletter that has a feed. Failures are isolated."""
        summary = PollSummary()
        for newsletter in self.db.get_pollable_newsletters():
            summary.polled += 1
            try:
                created = await self.fetch_newsletter(newsletter)
                summary.articles_created += len(created)
            except FeedFetchError as e:
                logger.warning(f"Polling newsletter {newsletter.id} failed: {e}")
                summary.errors[newsletter.id] = e.reason
            except Exception as e:
                logger.exception(f"Unexpected error polling newsletter {newsletter.id}")
                summary.errors[newsletter.id] = str(e)
        return summary

    # ─────────────────────────────────────────────────────────────
    # OPML import
    # ─────────────────────────────────────────────────────────────

    def _upsert_newsletter(self, url: str, name: str) -> DBNewsletter:
        existing = self.db.get_newsletter_by_rss_url(url)
        if existing:
            if name and name != existing.name:
                self.db.update_newsletter(existing.id, name=name)
                existing.name = name
            return existing

        newsletter_id = self.db.add_newsletter(
            name=name,
            email=placeholder_email(url),
            rss_url=url,
        )
        newsletter = self.db.get_newsletter(newsletter_id)
        if newsletter is None:
            raise RuntimeError(f"Newsletter {newsletter_id} vanished after insert")
        return newsletter

    async def _import_subscription(self, subscription: OPMLSubscription) -> OPMLImportResult:
        try:
            feed = await self.feed_parser.fetch(subscription.url)
            newsletter = self._upsert_newsletter(
                subscription.url, subscription.title or feed.title
            )
            created = self.ingest_entries(newsletter.id, feed.entries)
            self.db.update_newsletter_fetched(newsletter.id)
        except FeedFetchError as e:
            logger.warning(f"OPML import: could not fetch {subscription.url}: {e.reason}")
            return OPMLImportResult(
                url=subscription.url,
                name=subscription.title,
                success=False,
                error=e.reason,
            )
        except Exception as e:
            logger.exception(f"OPML import: unexpected error for {subscription.url}")
            return OPMLImportResult(
                url=subscription.url,
                name=subscription.title,
                success=False,
                error=str(e),
            )

        return OPMLImportResult(
            url=subscription.url,
            name=newsletter.name,
            success=True,
            newsletter_id=newsletter.id,
            articles_created=len(created),
        )

    async def import_opml(self, opml_content: str | bytes) -> OPMLImportResponse:
        """
        Import every subscription of an OPML document.

        Each subscription is fetched, upserted as a newsletter and ingested
        independently; a failing subscription is reported and does not stop
        the others.

        Raises:
            OPMLParseError: If the document itself is not valid OPML
        """
        subscriptions = parse_opml(opml_content)
        logger.info(f"Importing {len(subscriptions)} subscriptions from OPML")

        results = [await self._import_subscription(sub) for sub in subscriptions]

        return OPMLImportResponse(
            total=len(results),
            imported=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            articles_created=sum(r.articles_created for r in results),
            results=results,
        )
