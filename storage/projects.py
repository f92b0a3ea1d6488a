"""Project bouncer configuration and token contract lookups."""
from __future__ import annotations

import datetime as dt
from typing import Optional

from interview.errors import ConfigMissing
from interview.models import BouncerConfig

from .sqlite import get_conn


class ProjectStore:  # SQLite-backed project registry
    def upsert_project(
        self,
        project_id: str,
        config: BouncerConfig,
        *,
        token_address: Optional[str] = None,
    ) -> None:
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO projects
                   (id, token_address, mandatory_knowledge, project_desc, whitepaper_knowledge,
                    character_choice, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                     token_address = excluded.token_address,
                     mandatory_knowledge = excluded.mandatory_knowledge,
                     project_desc = excluded.project_desc,
                     whitepaper_knowledge = excluded.whitepaper_knowledge,
                     character_choice = excluded.character_choice,
                     updated_at = excluded.updated_at""",
                (
                    project_id,
                    token_address,
                    config.mandatory_knowledge,
                    config.project_desc,
                    config.whitepaper_knowledge,
                    config.character_choice,
                    dt.datetime.now(dt.timezone.utc).isoformat(),
                ),
            )

    def get_bouncer_config(self, project_id: str) -> BouncerConfig:
        with get_conn() as conn:
            row = conn.execute(
                """SELECT mandatory_knowledge, project_desc, whitepaper_knowledge, character_choice
                   FROM projects WHERE id = ?""",
                (project_id,),
            ).fetchone()
        if row is None:
            raise ConfigMissing(project_id)
        return BouncerConfig(**dict(row))

    def get_token_address(self, project_id: str) -> Optional[str]:
        with get_conn() as conn:
            row = conn.execute("SELECT token_address FROM projects WHERE id = ?", (project_id,)).fetchone()
        if row is None:
            raise ConfigMissing(project_id)
        return row["token_address"]


__all__ = ["ProjectStore"]
