"""Per-turn audit log of interview decisions."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class TurnLogPayload(BaseModel):
    user_id: str
    project_id: str
    turn: int
    decision: str
    knowledge_score: Optional[float] = None
    vibe_score: Optional[float] = None
    next_question: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)


def insert_turn(**data: Any) -> int:
    """Insert a turn log record."""

    payload = TurnLogPayload(**data)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO turn_log
               (timestamp, user_id, project_id, turn, decision, knowledge_score, vibe_score,
                next_question, events_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                dt.datetime.now(dt.timezone.utc).isoformat(),
                payload.user_id,
                payload.project_id,
                payload.turn,
                payload.decision,
                payload.knowledge_score,
                payload.vibe_score,
                payload.next_question,
                json.dumps(payload.events),
            ),
        )
        return int(cur.lastrowid)


def recent_turns(limit: int = 20, *, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the newest turn log rows, optionally filtered by project."""

    query = "SELECT * FROM turn_log"
    params: List[Any] = []
    if project_id:
        query += " WHERE project_id = ?"
        params.append(project_id)
    query += " ORDER BY id DESC LIMIT ?"
    params.append(limit)
    with get_conn() as conn:
        rows = conn.execute(query, params).fetchall()
    return [dict(row) for row in rows]


__all__ = ["TurnLogPayload", "insert_turn", "recent_turns"]
