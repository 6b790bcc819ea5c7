"""
Offline article cache - a durable local mirror of article records.

Articles are stored as JSON in a single SQLite table named ``articles``,
keyed by the article's ``_id``. The cache only accelerates rendering; the
server stays the source of truth.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

logger = logging.getLogger(__name__)

STORE_NAME = "articles"
SCHEMA_VERSION = 1


class OfflineCacheError(Exception):
    """Raised when the local store cannot be opened or a transaction fails."""


class OfflineArticleCache:
    """Key-value store of articles keyed by ``_id``. Last write wins."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Open the store and run one transaction; nothing is kept on failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to open offline cache {self.path}: {e}")
            raise OfflineCacheError(f"Failed to open offline cache: {e}") from e

        try:
            self._upgrade(connection)
            yield connection
            connection.commit()
        except sqlite3.Error as e:
            connection.rollback()
            logger.error(f"Offline cache transaction failed: {e}")
            raise OfflineCacheError(f"Offline cache transaction failed: {e}") from e
        finally:
            connection.close()

    def _upgrade(self, connection: sqlite3.Connection) -> None:
        version = connection.execute("PRAGMA user_version").fetchone()[0]
        if version > SCHEMA_VERSION:
            raise sqlite3.DatabaseError(
                f"Offline cache schema version {version} is newer than supported {SCHEMA_VERSION}"
            )
        if version < 1:
            connection.execute(
                f"CREATE TABLE IF NOT EXISTS {STORE_NAME} (_id PRIMARY KEY, data TEXT NOT NULL)"
            )
            connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    def put(self, articles: Iterable[dict[str, Any]]) -> int:
        """
        Upsert articles by ``_id`` in one transaction.

        Articles without an ``_id`` are skipped. Returns how many were stored.

        Raises:
            OfflineCacheError: If the store cannot be opened or written
        """
        rows = [
            (a["_id"], json.dumps(a))
            for a in articles
            if a.get("_id") not in (None, "")
        ]
        with self._transaction() as conn:
            conn.executemany(
                f"INSERT OR REPLACE INTO {STORE_NAME} (_id, data) VALUES (?, ?)", rows
            )
        logger.debug(f"{len(rows)} articles stored in offline cache")
        return len(rows)

    def get_all(self) -> list[dict[str, Any]]:
        """
        Every cached article, in no particular order.

        Raises:
            OfflineCacheError: If the store cannot be opened or read
        """
        with self._transaction() as conn:
            rows = conn.execute(f"SELECT data FROM {STORE_NAME}").fetchall()
        return [json.loads(row[0]) for row in rows]

    def clear(self) -> None:
        """Remove every cached article."""
        with self._transaction() as conn:
            conn.execute(f"DELETE FROM {STORE_NAME}")
