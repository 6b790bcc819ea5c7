"""
Request throttling per client address.

Two budgets apply. Every API call counts against RATE_LIMIT_PER_MINUTE.
Calls that make the server download third-party feeds (fetch-now and OPML
import) also share the smaller FEED_FETCH_RATE_LIMIT_PER_MINUTE budget, so
one client cannot turn the hub into a crawler. The WebSocket is not
throttled.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import config

FEED_FETCH_SCOPE = "feed-fetch"


def per_minute(count: int) -> str:
    return f"{count}/minute"


def feed_fetch_limit() -> str:
    """The smaller of the two budgets, ignoring disabled (non-positive) ones."""
    budgets = [
        n for n in (config.FEED_FETCH_RATE_LIMIT_PER_MINUTE, config.RATE_LIMIT_PER_MINUTE) if n > 0
    ]
    return per_minute(min(budgets, default=1))


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[per_minute(config.RATE_LIMIT_PER_MINUTE)],
    storage_uri="memory://",
    enabled=config.RATE_LIMIT_PER_MINUTE > 0,
)

# Decorator for routes that fetch feeds; the routes must take a `request` argument
limit_feed_fetches = limiter.shared_limit(feed_fetch_limit(), scope=FEED_FETCH_SCOPE)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many requests: {exc.detail}", "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """Install the limiter on the app. Nothing is throttled when RATE_LIMIT_PER_MINUTE <= 0."""
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
