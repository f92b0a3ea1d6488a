"""Session stores keyed by ``session:{user_id}`` with expiry."""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from interview.models import SessionData

from .sqlite import get_conn

Clock = Callable[[], float]


def session_key(user_id: str) -> str:
    return f"session:{user_id}"


class SessionStore(Protocol):
    def get(self, key: str) -> Optional[SessionData]:
        ...

    def set(self, key: str, data: SessionData, ttl_seconds: float) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class SqliteSessionStore:  # Sessions persisted as JSON rows with an absolute expiry
    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock

    def get(self, key: str) -> Optional[SessionData]:
        with get_conn() as conn:
            row = conn.execute("SELECT payload, expires_at FROM sessions WHERE key = ?", (key,)).fetchone()
            if row is None:
                return None
            if row["expires_at"] <= self._clock():
                conn.execute("DELETE FROM sessions WHERE key = ?", (key,))
                return None
        return SessionData.model_validate_json(row["payload"])

    def set(self, key: str, data: SessionData, ttl_seconds: float) -> None:
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO sessions (key, payload, expires_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, expires_at = excluded.expires_at""",
                (key, data.model_dump_json(), self._clock() + ttl_seconds),
            )

    def delete(self, key: str) -> None:
        with get_conn() as conn:
            conn.execute("DELETE FROM sessions WHERE key = ?", (key,))


class InMemorySessionStore:  # Process-local store for tests and single-node dev runs
    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[SessionData]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            payload, expires_at = item
            if expires_at <= self._clock():
                del self._items[key]
                return None
        return SessionData.model_validate_json(payload)

    def set(self, key: str, data: SessionData, ttl_seconds: float) -> None:
        with self._lock:
            self._items[key] = (data.model_dump_json(), self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


__all__ = ["InMemorySessionStore", "SessionStore", "SqliteSessionStore", "session_key"]
