"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

from config.settings import settings

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS sessions (
  key TEXT PRIMARY KEY,
  payload TEXT NOT NULL,
  expires_at REAL NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS projects (
  id TEXT PRIMARY KEY,
  token_address TEXT,
  mandatory_knowledge TEXT NOT NULL,
  project_desc TEXT NOT NULL,
  whitepaper_knowledge TEXT NOT NULL,
  character_choice TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS nonces (
  wallet TEXT PRIMARY KEY,
  next_nonce INTEGER NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS turn_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  user_id TEXT NOT NULL,
  project_id TEXT NOT NULL,
  turn INTEGER NOT NULL,
  decision TEXT NOT NULL,
  knowledge_score REAL,
  vibe_score REAL,
  next_question TEXT,
  events_json TEXT NOT NULL
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    db_path = db_path or settings.DB_PATH
    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
