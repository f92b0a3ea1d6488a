"""SQLite connection helper shared by the bouncer stores."""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from config.settings import settings

BUSY_TIMEOUT_S = 10.0


@contextmanager
def get_conn() -> Iterator[sqlite3.Connection]:
    """Yield a row-returning connection; commit on success, roll back on error."""

    os.makedirs(os.path.dirname(settings.DB_PATH) or ".", exist_ok=True)
    conn = sqlite3.connect(settings.DB_PATH, timeout=BUSY_TIMEOUT_S)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
