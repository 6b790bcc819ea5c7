"""
Pydantic models for API request/response validation.

Field names are snake_case in Python and camelCase on the wire; record ids
are exposed as ``_id``.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .database import DBArticle, DBNewsletter

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ApiModel(BaseModel):
    """Base model serializing to camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ─────────────────────────────────────────────────────────────
# Article Schemas
# ─────────────────────────────────────────────────────────────

class ArticleResponse(ApiModel):
    """Full article record."""
    id: int = Field(alias="_id")
    newsletter_id: int | None
    title: str
    content: str
    thumbnail_url: str | None = None
    published: bool
    published_at: str | None = None
    publish_until: str | None = None
    archived: bool
    external_id: str | None = None
    link: str | None = None
    created_at: str

    @classmethod
    def from_db(cls, article: DBArticle) -> "ArticleResponse":
        return cls(
            id=article.id,
            newsletter_id=article.newsletter_id,
            title=article.title,
            content=article.content,
            thumbnail_url=article.thumbnail_url,
            published=article.published,
            published_at=_iso(article.published_at),
            publish_until=_iso(article.publish_until),
            archived=article.archived,
            external_id=article.external_id,
            link=article.link,
            created_at=article.created_at.isoformat(),
        )


class ArticlesPageResponse(ApiModel):
    """One page of the article listing."""
    articles: list[ArticleResponse]
    total_count: int
    has_more: bool


class UpdateArticleRequest(ApiModel):
    """Request to change an article's visibility expiry. null clears it."""
    publish_until: datetime | None = None


# ─────────────────────────────────────────────────────────────
# Newsletter Schemas
# ─────────────────────────────────────────────────────────────

class NewsletterResponse(ApiModel):
    """Newsletter subscription."""
    id: int = Field(alias="_id")
    name: str
    email: str
    rss_url: str | None
    active: bool
    last_fetched: str | None = None
    fetch_error: str | None = None

    @classmethod
    def from_db(cls, newsletter: DBNewsletter) -> "NewsletterResponse":
        return cls(
            id=newsletter.id,
            name=newsletter.name,
            email=newsletter.email,
            rss_url=newsletter.rss_url,
            active=newsletter.active,
            last_fetched=_iso(newsletter.last_fetched),
            fetch_error=newsletter.fetch_error,
        )


class CreateNewsletterRequest(ApiModel):
    """Request to register a newsletter."""
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    rss_url: str | None = None

    @field_validator("name", "email")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("rss_url")
    @classmethod
    def blank_url_is_none(cls, value: str | None) -> str | None:
        # Forms submit an empty string when no feed is given
        if value is None or not value.strip():
            return None
        return value.strip()


class UpdateNewsletterStatusRequest(ApiModel):
    """Request to enable or disable polling of a newsletter."""
    active: bool


# ─────────────────────────────────────────────────────────────
# OPML Schemas
# ─────────────────────────────────────────────────────────────

class OPMLImportResult(ApiModel):
    """Result for a single subscription in an OPML import."""
    url: str
    name: str | None
    success: bool
    newsletter_id: int | None = None
    articles_created: int = 0
    error: str | None = None


class OPMLImportResponse(ApiModel):
    """Response from OPML import."""
    total: int
    imported: int
    failed: int
    articles_created: int
    results: list[OPMLImportResult]


# ─────────────────────────────────────────────────────────────
# Live update messages
# ─────────────────────────────────────────────────────────────

NEW_ARTICLE = "NEW_ARTICLE"


def new_article_message(article: DBArticle) -> dict:
    """Build the live message announcing a newly created article."""
    return {
        "type": NEW_ARTICLE,
        "article": {"data": ArticleResponse.from_db(article).model_dump(by_alias=True, mode="json")},
    }
