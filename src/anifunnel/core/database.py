"""SQLite persistence for authentication data and overrides."""

import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, List, Optional

from anifunnel.core.overrides import Override, OverrideStore, OverrideStoreError
from anifunnel.models.anilist import MediaListIdentifier, UserIdentifier
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS authentication (
        id INTEGER PRIMARY KEY,
        token VARCHAR(255) NOT NULL UNIQUE,
        user_id INTEGER NOT NULL,
        username VARCHAR(255) NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        expiry INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS overrides (
        id INTEGER PRIMARY KEY,
        title VARCHAR(255) UNIQUE,
        episode_offset INTEGER
    )
    """,
)


@dataclass(frozen=True)
class StoredUser:
    """Authenticated AniList user."""

    token: str
    user_id: UserIdentifier
    username: str
    expiry: int


class SQLiteConnectionFactory:
    """Opens short-lived connections to one database file."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection context manager."""
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()


class SQLiteOverrideStore(OverrideStore):
    """Override store backed by the ``overrides`` table."""

    def __init__(self, connections: SQLiteConnectionFactory):
        self._connections = connections

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Override]:
        try:
            with self._connections.connect() as conn:
                row = conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            logger.error("Error retrieving override from database", error=str(e))
            return None
        if row is None:
            return None
        return Override(id=row["id"], title=row["title"], episode_offset=row["episode_offset"])

    def get_by_title(self, title: str) -> Optional[Override]:
        return self._fetch_one(
            "SELECT id, title, episode_offset FROM overrides WHERE title = ?", (title,)
        )

    def get_by_id(self, id: MediaListIdentifier) -> Optional[Override]:
        return self._fetch_one(
            "SELECT id, title, episode_offset FROM overrides WHERE id = ?", (id,)
        )

    def all(self) -> List[Override]:
        try:
            with self._connections.connect() as conn:
                rows = conn.execute(
                    "SELECT id, title, episode_offset FROM overrides ORDER BY id"
                ).fetchall()
        except sqlite3.Error as e:
            logger.warning("Failed to fetch overrides", error=str(e))
            return []
        return [
            Override(id=row["id"], title=row["title"], episode_offset=row["episode_offset"])
            for row in rows
        ]

    def _replace(self, override: Override) -> None:
        # REPLACE deletes rows conflicting on either the ID or the unique title.
        self._execute(
            "INSERT OR REPLACE INTO overrides (id, title, episode_offset) VALUES (?, ?, ?)",
            (override.id, override.title, override.episode_offset),
        )

    def _delete(self, id: MediaListIdentifier) -> None:
        self._execute("DELETE FROM overrides WHERE id = ?", (id,))

    def _execute(self, sql: str, params: tuple) -> None:
        try:
            with self._connections.connect() as conn:
                cursor = conn.execute(sql, params)
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to save override", error=str(e))
            raise OverrideStoreError(str(e)) from e
        logger.debug("Override query executed", rows_affected=cursor.rowcount)


class AnifunnelDatabase:
    """SQLite database holding the AniList token and overrides."""

    def __init__(self, db_path: str | Path):
        """Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connections = SQLiteConnectionFactory(self.db_path)
        self._init_db()
        self.overrides = SQLiteOverrideStore(self._connections)

    def _init_db(self):
        """Initialize database schema."""
        with self._connections.connect() as conn:
            for statement in SCHEMA:
                conn.execute(statement)
            conn.commit()
        logger.debug("Database schema initialized", db_path=str(self.db_path))

    def save_authentication(
        self, token: str, user_id: UserIdentifier, username: str, expiry: int
    ) -> None:
        """Store an AniList token and its owner.

        Raises:
            sqlite3.Error: If the row could not be written
        """
        with self._connections.connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO authentication (token, user_id, username, expiry)
                VALUES (?, ?, ?, ?)
                """,
                (token, user_id, username, expiry),
            )
            conn.commit()
        logger.info("Authentication data saved to the database", user_id=user_id)

    def get_active_user(self, now: Optional[int] = None) -> Optional[StoredUser]:
        """Get the most recently stored user whose token has not expired.

        Args:
            now: Current UNIX time, defaults to the system clock

        Returns:
            Stored user, or None if there is no valid token
        """
        now = int(time.time()) if now is None else now
        try:
            with self._connections.connect() as conn:
                row = conn.execute(
                    """
                    SELECT token, user_id, username, expiry FROM authentication
                    WHERE expiry > ? ORDER BY id DESC LIMIT 1
                    """,
                    (now,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to fetch user", error=str(e))
            return None

        if row is None:
            logger.debug("No active user found")
            return None
        return StoredUser(
            token=row["token"],
            user_id=row["user_id"],
            username=row["username"],
            expiry=row["expiry"],
        )

    def remove_expired_tokens(self, now: Optional[int] = None) -> int:
        """Delete tokens past their expiry.

        Returns:
            Number of tokens removed
        """
        now = int(time.time()) if now is None else now
        try:
            with self._connections.connect() as conn:
                cursor = conn.execute("DELETE FROM authentication WHERE expiry <= ?", (now,))
                conn.commit()
                count = cursor.rowcount
        except sqlite3.Error as e:
            logger.error("Failed to remove expired tokens", error=str(e))
            return 0

        if count > 0:
            logger.info("Removed expired tokens", count=count)
        else:
            logger.info("No expired tokens found")
        return count
