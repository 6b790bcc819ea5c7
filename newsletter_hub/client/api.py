"""
HTTP and WebSocket client for the Newsletter Hub API.
"""

import json
import logging
from datetime import datetime
from typing import Any, AsyncIterator

import aiohttp

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when a request fails. status is None for network errors."""

    def __init__(self, status: int | None, detail: str):
        super().__init__(f"{status or 'network error'}: {detail}")
        self.status = status
        self.detail = detail


class NewsletterHubClient:
    """
    Async client for the Newsletter Hub HTTP API and live update socket.

    Use as an async context manager, or pass an existing aiohttp session
    (which the client will then not close).
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "NewsletterHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self.session.request(method, url, **kwargs) as resp:
                if resp.status >= 400:
                    raise ApiError(resp.status, await _error_detail(resp))
                if resp.content_type == "application/json":
                    return await resp.json()
                return await resp.text()
        except aiohttp.ClientError as e:
            raise ApiError(None, str(e) or type(e).__name__) from e

    # ─────────────────────────────────────────────────────────────
    # Articles
    # ─────────────────────────────────────────────────────────────

    async def get_articles(self, page: int = 1, max_id: int | None = None) -> dict:
        """Get one page: {"articles": [...], "totalCount": n, "hasMore": bool}."""
        params: dict[str, Any] = {"page": page}
        if max_id is not None:
            params["maxId"] = max_id
        return await self._request("GET", "/api/articles", params=params)

    async def get_article(self, article_id: int) -> dict:
        return await self._request("GET", f"/api/articles/{article_id}")

    async def toggle_publish(self, article_id: int) -> dict:
        return await self._request("POST", f"/api/articles/{article_id}/publish")

    async def toggle_archive(self, article_id: int) -> dict:
        return await self._request("POST", f"/api/articles/{article_id}/archive")

    async def set_publish_until(self, article_id: int, until: datetime | None) -> dict:
        body = {"publishUntil": until.isoformat() if until else None}
        return await self._request("PATCH", f"/api/articles/{article_id}", json=body)

    # ─────────────────────────────────────────────────────────────
    # Newsletters
    # ─────────────────────────────────────────────────────────────

    async def list_newsletters(self) -> list[dict]:
        return await self._request("GET", "/api/newsletters")

    async def create_newsletter(self, name: str, email: str, rss_url: str | None = None) -> dict:
        body = {"name": name, "email": email, "rssUrl": rss_url}
        return await self._request("POST", "/api/newsletters", json=body)

    async def set_newsletter_active(self, newsletter_id: int, active: bool) -> dict:
        return await self._request(
            "PATCH", f"/api/newsletters/{newsletter_id}/status", json={"active": active}
        )

    async def fetch_rss(self, newsletter_id: int) -> list[dict]:
        """Fetch a newsletter's feed now. Returns the newly created articles."""
        return await self._request("POST", f"/api/newsletters/{newsletter_id}/fetch-rss")

    async def delete_newsletter(self, newsletter_id: int) -> dict:
        return await self._request("DELETE", f"/api/newsletters/{newsletter_id}")

    async def import_opml(self, content: bytes, filename: str = "subscriptions.opml") -> dict:
        """Upload an OPML file. Returns the per-feed import report."""
        form = aiohttp.FormData()
        form.add_field("file", content, filename=filename, content_type="text/x-opml")
        return await self._request("POST", "/api/newsletters/import-opml", data=form)

    # ─────────────────────────────────────────────────────────────
    # Live updates
    # ─────────────────────────────────────────────────────────────

    @property
    def live_url(self) -> str:
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url[len("https://"):] + "/ws"
        if self.base_url.startswith("http://"):
            return "ws://" + self.base_url[len("http://"):] + "/ws"
        return self.base_url + "/ws"

    async def live_updates(self) -> AsyncIterator[dict]:
        """Yield decoded server messages until the socket closes."""
        try:
            async with self.session.ws_connect(self.live_url, heartbeat=30) as ws:
                logger.info("Connected to live updates")
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        try:
                            yield json.loads(msg.data)
                        except json.JSONDecodeError:
                            logger.warning("Ignoring malformed live message")
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        logger.error(f"Live update socket error: {ws.exception()}")
                        break
        except aiohttp.ClientError as e:
            raise ApiError(None, str(e) or type(e).__name__) from e
        logger.info("Disconnected from live updates")


async def _error_detail(resp: aiohttp.ClientResponse) -> str:
    try:
        payload = await resp.json(content_type=None)
    except (json.JSONDecodeError, aiohttp.ContentTypeError, UnicodeDecodeError):
        return resp.reason or f"HTTP {resp.status}"
    if isinstance(payload, dict) and "detail" in payload:
        return str(payload["detail"])
    return str(payload)
