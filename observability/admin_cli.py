"""Lightweight CLI helpers for inspecting bouncer turn telemetry."""
from __future__ import annotations

import argparse
import json
import sqlite3
from typing import Optional

from config.settings import settings


def tail_turns(limit: int = 20, project_id: Optional[str] = None) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        query = """
            SELECT timestamp, user_id, project_id, turn, decision, knowledge_score, vibe_score, events_json
            FROM turn_log
        """
        params: list = []
        if project_id:
            query += " WHERE project_id = ?"
            params.append(project_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        cursor.execute(query, params)
        for row in cursor.fetchall():
            ts, user_id, project, turn, decision, knowledge, vibe, events_json = row
            spans = ",".join(f"{evt['span']}:{evt['ms']}ms" for evt in json.loads(events_json or "[]"))
            print(
                f"[{ts}] {project}/{user_id} turn={turn} -> {decision} k={knowledge} v={vibe} spans={spans}"
            )
    finally:
        conn.close()


def decision_counts(project_id: Optional[str] = None) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        query = "SELECT decision, COUNT(*) FROM turn_log"
        params: list = []
        if project_id:
            query += " WHERE project_id = ?"
            params.append(project_id)
        query += " GROUP BY decision ORDER BY decision"
        cursor.execute(query, params)
        for decision, count in cursor.fetchall():
            print(f"{decision}: {count}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-turns", type=int, help="Show the latest scored turns")
    parser.add_argument("--decisions", action="store_true", help="Count turns per decision")
    parser.add_argument("--project", help="Restrict output to one project id")
    args = parser.parse_args()

    if args.tail_turns:
        tail_turns(args.tail_turns, args.project)
    if args.decisions:
        decision_counts(args.project)


if __name__ == "__main__":
    main()
