from __future__ import annotations  # Bouncer interview state models

import datetime as dt
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Axis = Literal["knowledge", "vibe"]
Decision = Literal["pending", "complete", "failed"]


class ConversationEntry(BaseModel):  # One asked question and its answer once given
    question: str
    answer: str | None = None

    @property
    def pending(self) -> bool:
        return self.answer is None


class ConversationState(BaseModel):  # Per user and project interview state
    history: List[ConversationEntry] = Field(default_factory=list)
    final: bool = False
    access: bool = False
    signature: str | None = None
    token_allocation: int | None = None
    nonce: int | None = None
    wallet_address: str | None = None
    knowledge_score: float | None = None
    vibe_score: float | None = None
    wallet_bonus: float = Field(default=0.0, ge=0.0, le=5.0)


class SessionData(BaseModel):  # Per user login session holding every project interview
    started_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    projects: Dict[str, ConversationState] = Field(default_factory=dict)


class BouncerConfig(BaseModel):  # Project owner supplied grading and persona configuration
    model_config = ConfigDict(frozen=True)

    mandatory_knowledge: str
    project_desc: str
    whitepaper_knowledge: str
    character_choice: str

    @field_validator("mandatory_knowledge", "project_desc", "whitepaper_knowledge", "character_choice")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("bouncer config fields must be non-empty")
        return value.strip()


class Evaluation(BaseModel):  # Scoring agent output for one axis
    score: int
    feedback: str = ""
    next_question: str = ""


class TurnResult(BaseModel):  # Orchestrator output for one interview turn
    next_question: str | None
    decision: Decision
    should_continue: bool
    updated_history: List[ConversationEntry]
    knowledge_score: float | None = None
    vibe_score: float | None = None
    feedback: Dict[str, str] = Field(default_factory=dict)
    events: List[Dict[str, Any]] = Field(default_factory=list)


def pending_count(history: List[ConversationEntry]) -> int:
    return sum(1 for entry in history if entry.pending)


__all__ = [
    "Axis",
    "BouncerConfig",
    "ConversationEntry",
    "ConversationState",
    "Decision",
    "Evaluation",
    "SessionData",
    "TurnResult",
    "pending_count",
]
