"""
Newsletter Hub API Server

FastAPI application providing endpoints for:
- Article listing and curation (publish, schedule, archive)
- Newsletter management (add, toggle, fetch now, remove)
- OPML import/export
- Live new-article updates over WebSocket
- Public RSS feed of published articles
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import config, configure_logging, state
from .broadcaster import ConnectionRegistry
from .database import Database
from .feeds import FeedParser
from .rate_limit import setup_rate_limiting
from .scheduler import FeedPollingScheduler
from .services import IngestionService
from .routes import (
    articles_router,
    newsletters_router,
    live_router,
    misc_router,
)

logger = logging.getLogger(__name__)


def _ingestion_from_state() -> IngestionService:
    return IngestionService(db=state.db, feed_parser=state.feed_parser, broadcaster=state.broadcaster)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if already initialized (e.g., by tests)
    if state.db is None:
        state.db = Database(config.DB_PATH)
        state.feed_parser = FeedParser(
            timeout=config.FEED_TIMEOUT,
            user_agent=config.FEED_USER_AGENT,
            allow_private=config.ALLOW_PRIVATE_FEED_URLS,
        )
        state.broadcaster = ConnectionRegistry(queue_size=config.LIVE_QUEUE_SIZE)

        if config.POLL_ENABLED:
            state.scheduler = FeedPollingScheduler(
                _ingestion_from_state,
                interval_minutes=config.POLL_INTERVAL_MINUTES,
            )
            await state.scheduler.start()
        else:
            logger.info("Feed polling disabled (POLL_ENABLED=false)")

    yield

    # Shutdown
    if state.scheduler:
        await state.scheduler.stop()
        state.scheduler = None
    if state.broadcaster:
        await state.broadcaster.close_all()


app = FastAPI(
    title="Newsletter Hub API",
    version=__version__,
    lifespan=lifespan
)

setup_rate_limiting(app)

# Include routers
app.include_router(misc_router)
app.include_router(articles_router)
app.include_router(newsletters_router)
app.include_router(live_router)


def main():
    """Run the API server."""
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
