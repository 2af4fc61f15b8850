"""Session storage backends for stored app sessions."""

import sqlite3
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from .models.shopify_models import OfflineSession


class SessionStorage(ABC):
    """Abstract session storage interface."""

    @abstractmethod
    def find_sessions_by_shop(self, shop: str) -> List[OfflineSession]:
        """Return every stored session for a shop, in insertion order."""

    @abstractmethod
    def store_session(self, session: OfflineSession) -> None:
        """Insert or replace a session by id."""

    @abstractmethod
    def delete_sessions_by_shop(self, shop: str) -> int:
        """Delete every session of a shop and return how many were removed."""

    def find_offline_session(self, shop: str) -> Optional[OfflineSession]:
        """Return the first offline session of ``shop`` that carries a token."""
        for session in self.find_sessions_by_shop(shop):
            if not session.is_online and session.access_token:
                return session
        return None

    def find_offline_token(self, shop: str) -> Optional[str]:
        session = self.find_offline_session(shop)
        return session.access_token if session else None

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemorySessionStorage(SessionStorage):
    """In-memory storage for development/testing."""

    def __init__(self):
        self._store: dict[str, OfflineSession] = {}

    def find_sessions_by_shop(self, shop: str) -> List[OfflineSession]:
        return [s for s in self._store.values() if s.shop == shop]

    def store_session(self, session: OfflineSession) -> None:
        self._store[session.id] = session

    def delete_sessions_by_shop(self, shop: str) -> int:
        ids = [key for key, s in self._store.items() if s.shop == shop]
        for key in ids:
            del self._store[key]
        return len(ids)


class SQLiteSessionStorage(SessionStorage):
    """SQLite-based storage for persistence across restarts."""

    def __init__(self, db_path: str = "sessions.db"):
        self.db_path = db_path
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                shop TEXT NOT NULL,
                is_online INTEGER NOT NULL DEFAULT 0,
                access_token TEXT,
                scope TEXT
            )
            """
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS sessions_shop ON sessions (shop)")
        self._conn.commit()

    def find_sessions_by_shop(self, shop: str) -> List[OfflineSession]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, shop, is_online, access_token, scope FROM sessions WHERE shop = ? ORDER BY seq",
                (shop,),
            ).fetchall()
        return [
            OfflineSession(id=row[0], shop=row[1], is_online=bool(row[2]), access_token=row[3], scope=row[4])
            for row in rows
        ]

    def store_session(self, session: OfflineSession) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO sessions (id, shop, is_online, access_token, scope) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    shop = excluded.shop,
                    is_online = excluded.is_online,
                    access_token = excluded.access_token,
                    scope = excluded.scope
                """,
                (session.id, session.shop, int(session.is_online), session.access_token, session.scope),
            )
            self._conn.commit()

    def delete_sessions_by_shop(self, shop: str) -> int:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM sessions WHERE shop = ?", (shop,))
            self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()
