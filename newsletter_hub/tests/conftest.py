"""
Pytest fixtures for backend tests.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from newsletter_hub.broadcaster import ConnectionRegistry
from newsletter_hub.config import state
from newsletter_hub.database import Database
from newsletter_hub.feeds import FeedFetchError, FeedParser, parse_feed_sync
from newsletter_hub.rate_limit import limiter
from newsletter_hub.server import app


def rss_document(title: str, items: list[dict]) -> str:
    """Build a small RSS 2.0 document. Each item: guid, title, link, body."""
    parts = []
    for item in items:
        fields = []
        if item.get("guid"):
            fields.append(f"<guid>{item['guid']}</guid>")
        if item.get("title"):
            fields.append(f"<title>{item['title']}</title>")
        if item.get("link"):
            fields.append(f"<link>{item['link']}</link>")
        fields.append(f"<description>{item.get('body', 'Body text')}</description>")
        fields.append("<pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>")
        parts.append("<item>" + "".join(fields) + "</item>")
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://example.com</link>"
        "<description>Test feed</description>"
        + "".join(parts)
        + "</channel></rss>"
    )


def feed_items(prefix: str, count: int) -> list[dict]:
    return [
        {
            "guid": f"{prefix}-{i}",
            "title": f"{prefix} story {i}",
            "link": f"https://{prefix}.example.com/{i}",
        }
        for i in range(1, count + 1)
    ]


def fake_fetch(feeds: dict[str, str | Exception]) -> AsyncMock:
    """AsyncMock for FeedParser.fetch serving canned documents by URL."""

    async def _fetch(url: str):
        document = feeds.get(url)
        if document is None:
            raise FeedFetchError(url, "Cannot connect to host")
        if isinstance(document, Exception):
            raise document
        return parse_feed_sync(document, url)

    return AsyncMock(side_effect=_fetch)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db


@pytest.fixture
def feed_parser():
    """A FeedParser whose network fetch is replaced per test."""
    parser = FeedParser()
    parser.fetch = fake_fetch({})
    return parser


@pytest.fixture
def client(temp_db_path, feed_parser):
    """Create a test client with an isolated database and no polling."""
    original = (state.db, state.feed_parser, state.broadcaster, state.scheduler)
    original_limiter = limiter.enabled

    state.db = Database(temp_db_path)
    state.feed_parser = feed_parser
    state.broadcaster = ConnectionRegistry(queue_size=10)
    state.scheduler = None
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    state.db, state.feed_parser, state.broadcaster, state.scheduler = original
    limiter.enabled = original_limiter


@pytest.fixture
def client_with_data(client):
    """Test client with a newsletter and twelve ingested articles."""
    db = state.db
    newsletter_id = db.add_newsletter(
        name="Tech Weekly",
        email="tech@example.com",
        rss_url="https://tech.example.com/feed.xml",
    )
    article_ids = [
        db.add_article(
            newsletter_id=newsletter_id,
            title=f"Article {i}",
            content=f"<p>Content of article {i}</p>",
            external_id=f"tech-{i}",
            link=f"https://tech.example.com/{i}",
        )
        for i in range(1, 13)
    ]
    return client, {"newsletter_id": newsletter_id, "article_ids": article_ids}


@pytest.fixture
def rss():
    """Builder for RSS documents: rss(title, items)."""
    return rss_document


@pytest.fixture
def feed_xml():
    """Builder for an RSS document with `count` well-formed items: feed_xml(prefix, count)."""
    def _build(prefix: str, count: int) -> str:
        return rss_document(f"{prefix.title()} Feed", feed_items(prefix, count))
    return _build


@pytest.fixture
def serve_feeds(feed_parser):
    """Replace the feed parser's network fetch with canned documents by URL."""
    def _serve(feeds: dict[str, str | Exception]) -> AsyncMock:
        feed_parser.fetch = fake_fetch(feeds)
        return feed_parser.fetch
    return _serve
