"""
Client-side helpers: API client, offline article cache and list controller.
"""

from .api import ApiError, NewsletterHubClient
from .article_list import ArticleListController, PAGE_SIZE
from .offline_cache import OfflineArticleCache, OfflineCacheError

__all__ = [
    "ApiError",
    "NewsletterHubClient",
    "ArticleListController",
    "PAGE_SIZE",
    "OfflineArticleCache",
    "OfflineCacheError",
]
