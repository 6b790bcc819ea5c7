"""
Feed Parser - Fetch and parse RSS/Atom feeds into article candidates.

Handles:
- RSS 2.0 and Atom 1.0 formats
- Entry identity (guid/id, falling back to the link)
- Thumbnail discovery (media tags, enclosures, first inline image)
- Rate limiting per domain
"""

import asyncio
import calendar
import io
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urljoin, urlparse

import aiohttp
import feedparser
from bs4 import BeautifulSoup

from .url_validator import validate_feed_url_async

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = {301, 302, 303, 307, 308}


class FeedFetchError(Exception):
    """Raised when a feed cannot be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


@dataclass
class FeedEntry:
    """A single entry from a feed, ready to become an article."""
    external_id: str | None
    title: str | None
    content: str
    thumbnail_url: str | None
    link: str | None
    published: datetime | None


@dataclass
class Feed:
    """Represents a parsed feed."""
    url: str
    title: str
    entries: list[FeedEntry]
    fetched_at: datetime


class FeedParser:
    """Fetches and parses RSS/Atom feeds with rate limiting."""

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str | None = None,
        allow_private: bool = False,
        max_redirects: int = 5,
    ):
        self.timeout = timeout
        self.user_agent = user_agent or "NewsletterHub/1.0"
        self.allow_private = allow_private
        self.max_redirects = max_redirects
        self._domain_last_fetch: dict[str, float] = {}
        self._min_interval = 1.0  # Minimum seconds between requests to same domain

    async def fetch(self, url: str) -> Feed:
        """
        Fetch and parse a feed URL.

        Redirects are followed by hand so that every hop passes the same
        URL checks as the original address.

        Raises:
            FeedFetchError: If the URL is rejected, unreachable, or not a feed
        """
        url = await self._check_url(url)
        await self._rate_limit(urlparse(url).netloc)

        headers = {"User-Agent": self.user_agent}
        try:
            async with aiohttp.ClientSession() as session:
                for _ in range(self.max_redirects + 1):
                    async with session.get(
                        url,
                        headers=headers,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                        allow_redirects=False,
                    ) as resp:
                        location = resp.headers.get("Location")
                        if resp.status in REDIRECT_STATUSES and location:
                            url = await self._check_url(urljoin(url, location))
                            continue
                        resp.raise_for_status()
                        content = await resp.read()
                        break
                else:
                    raise FeedFetchError(url, f"More than {self.max_redirects} redirects")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedFetchError(url, str(e) or type(e).__name__) from e

        return self.parse(url, content)

    async def _check_url(self, url: str) -> str:
        try:
            return await validate_feed_url_async(url, allow_private=self.allow_private)
        except ValueError as e:
            raise FeedFetchError(url, str(e)) from e

    def parse(self, url: str, content: bytes | str) -> Feed:
        """Parse feed content using feedparser."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        # A stream is never mistaken for a URL or file path to open
        parsed = feedparser.parse(io.BytesIO(content))

        if parsed.bozo and not parsed.entries:
            raise FeedFetchError(url, f"Failed to parse feed: {parsed.bozo_exception}")

        entries = [self._parse_entry(entry, url) for entry in parsed.entries]

        return Feed(
            url=url,
            title=parsed.feed.get("title") or urlparse(url).netloc or url,
            entries=entries,
            fetched_at=datetime.now(timezone.utc),
        )

    def _parse_entry(self, entry, feed_url: str) -> FeedEntry:
        # Prefer full content over summary
        content = ""
        if entry.get("content"):
            content = entry.content[0].get("value", "")
        elif entry.get("summary"):
            content = entry.summary
        elif entry.get("description"):
            content = entry.description

        link = entry.get("link") or None
        if not link:
            for candidate in entry.get("links", []):
                if candidate.get("rel") == "alternate" or candidate.get("type") == "text/html":
                    link = candidate.get("href") or None
                    break

        title = (entry.get("title") or "").strip() or None

        return FeedEntry(
            external_id=(entry.get("id") or "").strip() or link,
            title=title,
            content=content,
            thumbnail_url=_find_thumbnail(entry, content, link or feed_url),
            link=link,
            published=_entry_timestamp(entry),
        )

    async def _rate_limit(self, domain: str):
        """Ensure minimum interval between requests to same domain."""
        now = time.time()
        if domain in self._domain_last_fetch:
            elapsed = now - self._domain_last_fetch[domain]
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
        self._domain_last_fetch[domain] = time.time()


def _entry_timestamp(entry) -> datetime | None:
    # feedparser normalizes parsed dates to UTC struct_time
    for key in ("published_parsed", "updated_parsed"):
        value = entry.get(key)
        if value:
            try:
                return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
            except (TypeError, ValueError, OverflowError):
                continue
    return None


def _find_thumbnail(entry, content: str, base_url: str) -> str | None:
    for thumb in entry.get("media_thumbnail", []):
        if thumb.get("url"):
            return thumb["url"]

    for media in entry.get("media_content", []):
        media_type = media.get("type", "")
        if media.get("url") and (media.get("medium") == "image" or media_type.startswith("image/")):
            return media["url"]

    for enclosure in entry.get("enclosures", []):
        if enclosure.get("href") and enclosure.get("type", "").startswith("image/"):
            return enclosure["href"]

    if content and "<img" in content:
        img = BeautifulSoup(content, "html.parser").find("img", src=True)
        if img:
            return urljoin(base_url, img["src"])

    return None


def parse_feed_sync(content: bytes | str, url: str = "") -> Feed:
    """
    Synchronous feed parsing (for use when content is already fetched).

    Useful for testing or when you already have the feed content.
    """
    return FeedParser().parse(url, content)
