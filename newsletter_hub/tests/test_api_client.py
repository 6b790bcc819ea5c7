"""
Tests for the async API client against a stub aiohttp server.
"""

from datetime import datetime, timezone

import pytest
from aiohttp import test_utils, web

from newsletter_hub.client import ApiError, NewsletterHubClient


async def list_articles(request: web.Request) -> web.Response:
    return web.json_response({
        "articles": [{"_id": 3}, {"_id": 2}],
        "totalCount": 2,
        "hasMore": False,
        "query": dict(request.query),
    })


async def missing_article(request: web.Request) -> web.Response:
    return web.json_response({"detail": "Article not found"}, status=404)


async def update_article(request: web.Request) -> web.Response:
    body = await request.json()
    return web.json_response({"_id": int(request.match_info["article_id"]), **body})


async def unavailable(request: web.Request) -> web.Response:
    return web.Response(status=503, text="down for maintenance")


async def import_opml(request: web.Request) -> web.Response:
    form = await request.post()
    upload = form["file"]
    return web.json_response({
        "filename": upload.filename,
        "size": len(upload.file.read()),
    })


async def live(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    await ws.send_json({"type": "NEW_ARTICLE", "article": {"data": {"_id": 1}}})
    await ws.send_str("not json")
    await ws.send_json({"type": "NEW_ARTICLE", "article": {"data": {"_id": 2}}})
    await ws.close()
    return ws


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/api/articles", list_articles)
    app.router.add_get("/api/articles/{article_id}", missing_article)
    app.router.add_patch("/api/articles/{article_id}", update_article)
    app.router.add_get("/api/newsletters", unavailable)
    app.router.add_post("/api/newsletters/import-opml", import_opml)
    app.router.add_get("/ws", live)
    return app


def base_url(server: test_utils.TestServer) -> str:
    return f"http://{server.host}:{server.port}"


class TestRequests:
    """Tests for HTTP calls."""

    @pytest.mark.asyncio
    async def test_get_articles_sends_paging_params(self):
        """Should pass page and maxId as query parameters."""
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                first = await api.get_articles()
                later = await api.get_articles(page=2, max_id=3)

        assert first["query"] == {"page": "1"}
        assert later["query"] == {"page": "2", "maxId": "3"}
        assert [a["_id"] for a in first["articles"]] == [3, 2]

    @pytest.mark.asyncio
    async def test_error_detail(self):
        """Error responses should raise ApiError with the server's detail."""
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                with pytest.raises(ApiError) as exc_info:
                    await api.get_article(42)

        assert exc_info.value.status == 404
        assert exc_info.value.detail == "Article not found"

    @pytest.mark.asyncio
    async def test_error_without_json_body(self):
        """Non-JSON error bodies fall back to the HTTP reason."""
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                with pytest.raises(ApiError) as exc_info:
                    await api.list_newsletters()

        assert exc_info.value.status == 503
        assert exc_info.value.detail == "Service Unavailable"

    @pytest.mark.asyncio
    async def test_set_publish_until(self):
        """Should send publishUntil as ISO 8601 or null."""
        until = datetime(2030, 1, 2, 3, 4, tzinfo=timezone.utc)
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                scheduled = await api.set_publish_until(5, until)
                cleared = await api.set_publish_until(5, None)

        assert scheduled == {"_id": 5, "publishUntil": "2030-01-02T03:04:00+00:00"}
        assert cleared == {"_id": 5, "publishUntil": None}

    @pytest.mark.asyncio
    async def test_import_opml_uploads_file(self):
        """Should upload the document as the multipart field 'file'."""
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                result = await api.import_opml(b"<opml/>", filename="mine.opml")

        assert result == {"filename": "mine.opml", "size": 7}

    @pytest.mark.asyncio
    async def test_network_error(self):
        """Unreachable servers should raise ApiError without a status."""
        async with NewsletterHubClient("http://127.0.0.1:1", timeout=5) as api:
            with pytest.raises(ApiError) as exc_info:
                await api.get_articles()
        assert exc_info.value.status is None


class TestLiveUpdates:
    """Tests for the WebSocket stream."""

    def test_live_url(self):
        """The socket URL mirrors the API scheme."""
        assert NewsletterHubClient("http://hub.example.com/").live_url == "ws://hub.example.com/ws"
        assert NewsletterHubClient("https://hub.example.com").live_url == "wss://hub.example.com/ws"

    @pytest.mark.asyncio
    async def test_yields_messages_until_closed(self):
        """Should yield decoded messages, skip malformed ones and stop on close."""
        async with test_utils.TestServer(make_app()) as server:
            async with NewsletterHubClient(base_url(server)) as api:
                messages = [m async for m in api.live_updates()]

        assert [m["article"]["data"]["_id"] for m in messages] == [1, 2]
