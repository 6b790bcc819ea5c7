"""
Database module - SQLite operations for newsletters and articles.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import DBArticle, DBNewsletter
from .article_repository import ArticleRepository
from .newsletter_repository import NewsletterRepository, DuplicateEmailError
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "DBArticle",
    "DBNewsletter",
    "ArticleRepository",
    "NewsletterRepository",
    "DuplicateEmailError",
]
