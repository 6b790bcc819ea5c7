"""
Article list controller.

Builds the article list shown to a reader from three sources: server pages,
the offline cache and live NEW_ARTICLE messages. Articles are merged by
``_id`` (later copies replace earlier ones) and displayed newest first by
``_id``, ``page * page_size`` at a time.
"""

import logging
from typing import Any, AsyncIterable, Callable, Protocol

from .offline_cache import OfflineArticleCache, OfflineCacheError

logger = logging.getLogger(__name__)

PAGE_SIZE = 9
NEW_ARTICLE = "NEW_ARTICLE"


class ArticlesApi(Protocol):
    async def get_articles(self, page: int = 1, max_id: int | None = None) -> dict: ...


class ArticleListController:
    """Paginated, de-duplicated view over server, cache and live articles."""

    def __init__(
        self,
        api: ArticlesApi,
        cache: OfflineArticleCache | None = None,
        page_size: int = PAGE_SIZE,
        on_new_article: Callable[[dict], None] | None = None,
    ):
        self.api = api
        self.cache = cache
        self.page_size = page_size
        self.on_new_article = on_new_article

        self.page = 1
        self.server_has_more = False
        self._articles: dict[Any, dict] = {}
        self._max_id: int | None = None

    def __len__(self) -> int:
        return len(self._articles)

    # ─────────────────────────────────────────────────────────────
    # Sources
    # ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Seed from the offline cache, then fetch the first page."""
        self.load_cached()
        await self._fetch_page(1)

    def load_cached(self) -> int:
        """Merge every cached article. Cache failures are logged and ignored."""
        if self.cache is None:
            return 0
        try:
            articles = self.cache.get_all()
        except OfflineCacheError as e:
            logger.warning(f"Offline cache unavailable, continuing without it: {e}")
            return 0
        self._merge(articles)
        return len(articles)

    async def load_more(self) -> None:
        """Show the next page, fetching it from the server if it has more."""
        self.page += 1
        if not self.server_has_more:
            return
        try:
            await self._fetch_page(self.page)
        except Exception:
            self.page -= 1
            raise

    async def _fetch_page(self, page: int) -> None:
        response = await self.api.get_articles(page, max_id=self._max_id if page > 1 else None)
        articles = response.get("articles") or []

        if page == 1 and articles:
            # Later pages stay within the listing page 1 came from
            self._max_id = max(
                (a["_id"] for a in articles if a.get("_id") is not None), default=None
            )

        self._store(articles)
        self._merge(articles)
        self.server_has_more = bool(response.get("hasMore"))

    def handle_message(self, message: dict) -> dict | None:
        """
        Apply one live message. Returns the new article, or None if the
        message was not a usable NEW_ARTICLE event.
        """
        if message.get("type") != NEW_ARTICLE:
            return None
        article = (message.get("article") or {}).get("data")
        if not isinstance(article, dict) or article.get("_id") is None:
            logger.warning("Ignoring NEW_ARTICLE message without an article id")
            return None

        self._merge([article])
        self._store([article])
        if self.on_new_article is not None:
            self.on_new_article(article)
        return article

    async def listen(self, updates: AsyncIterable[dict]) -> int:
        """Apply live messages until the stream ends. Returns articles received."""
        received = 0
        async for message in updates:
            if self.handle_message(message) is not None:
                received += 1
        return received

    # ─────────────────────────────────────────────────────────────
    # View
    # ─────────────────────────────────────────────────────────────

    @property
    def visible(self) -> list[dict]:
        """Articles to display: newest first, page * page_size of them."""
        ordered = sorted(self._articles.values(), key=lambda a: a["_id"], reverse=True)
        return ordered[: self.page * self.page_size]

    @property
    def can_load_more(self) -> bool:
        return self.server_has_more or len(self._articles) > self.page * self.page_size

    def _merge(self, articles: list[dict]) -> None:
        for article in articles:
            key = article.get("_id")
            if key is not None:
                self._articles[key] = article

    def _store(self, articles: list[dict]) -> None:
        if self.cache is None or not articles:
            return
        try:
            self.cache.put(articles)
        except OfflineCacheError as e:
            logger.warning(f"Could not write {len(articles)} articles to offline cache: {e}")
