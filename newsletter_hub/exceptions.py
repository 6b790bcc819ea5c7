"""
Errors returned by the newsletter API.

Each failure the services can report has one class here, so a given problem
always maps to the same status code and message whichever route hits it.
"""

from typing import TypeVar

from fastapi import HTTPException

T = TypeVar("T")


class NotFoundError(HTTPException):
    """404 for an id that matches no stored record."""

    def __init__(self, kind: str):
        super().__init__(status_code=404, detail=f"{kind} not found")


class BadRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class DuplicateNewsletterError(HTTPException):
    def __init__(self):
        super().__init__(status_code=409, detail="A newsletter with this email already exists")


class FeedUnavailableError(HTTPException):
    """502 when the upstream feed could not be downloaded or parsed."""

    def __init__(self, reason: str):
        super().__init__(status_code=502, detail=f"Failed to fetch RSS feed: {reason}")


def article_or_404(article: T | None) -> T:
    if article is None:
        raise NotFoundError("Article")
    return article


def newsletter_or_404(newsletter: T | None) -> T:
    if newsletter is None:
        raise NotFoundError("Newsletter")
    return newsletter
