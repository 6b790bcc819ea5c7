"""
Configuration and application state management.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException

if TYPE_CHECKING:
    from .database import Database
    from .feeds import FeedParser
    from .broadcaster import ConnectionRegistry
    from .scheduler import FeedPollingScheduler

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


class Config:
    """Application configuration from environment."""
    DB_PATH: Path = Path(os.getenv("DB_PATH", "./data/newsletters.db"))
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "5005"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Public URL used for links in the generated RSS channel
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://127.0.0.1:5005")

    # Feed fetching
    FEED_TIMEOUT: int = int(os.getenv("FEED_TIMEOUT", "30"))  # seconds
    FEED_USER_AGENT: str = os.getenv(
        "FEED_USER_AGENT", "NewsletterHub/1.0 (+https://github.com/newsletter-hub)"
    )
    # Allow feeds on private/loopback addresses (local development only)
    ALLOW_PRIVATE_FEED_URLS: bool = _parse_bool(os.getenv("ALLOW_PRIVATE_FEED_URLS"))

    # Background polling of active newsletters
    POLL_ENABLED: bool = _parse_bool(os.getenv("POLL_ENABLED"), default=True)
    POLL_INTERVAL_MINUTES: int = int(os.getenv("POLL_INTERVAL_MINUTES", "30"))

    # Outbound messages buffered per live client before it is dropped
    LIVE_QUEUE_SIZE: int = int(os.getenv("LIVE_QUEUE_SIZE", "100"))

    # Requests per client per minute; 0 disables throttling
    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
    # Shared budget for fetch-now and OPML import, which download third-party feeds
    FEED_FETCH_RATE_LIMIT_PER_MINUTE: int = int(os.getenv("FEED_FETCH_RATE_LIMIT_PER_MINUTE", "10"))


config = Config()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class AppState:
    """Shared application state."""
    db: "Database | None" = None
    feed_parser: "FeedParser | None" = None
    broadcaster: "ConnectionRegistry | None" = None
    scheduler: "FeedPollingScheduler | None" = None


state = AppState()


def get_db() -> "Database":
    """Dependency to get database instance."""
    if not state.db:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return state.db
