"""Pydantic schemas for the bouncer HTTP API."""
from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RegisterResp(BaseModel):
    user_id: str
    started_at: dt.datetime
    ttl_seconds: int


class CreateProjectReq(BaseModel):
    project_id: str = Field(min_length=1)
    token_address: Optional[str] = None
    mandatory_knowledge: str
    project_desc: str
    whitepaper_knowledge: str
    character_choice: str

    @field_validator("project_id", "mandatory_knowledge", "project_desc", "whitepaper_knowledge", "character_choice")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be non-empty")
        return value.strip()


class ProjectResp(BaseModel):
    project_id: str
    token_address: Optional[str] = None


class InteractionReq(BaseModel):
    answer: str = ""
    reset: bool = False
    wallet_address: Optional[str] = None


class SignatureReq(BaseModel):
    user_wallet_address: str = Field(min_length=1)
