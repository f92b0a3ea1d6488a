"""Output schemas enforced on bouncer agent LLM replies."""
from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field


class AgentEvaluation(BaseModel):
    """Combined reply: score, feedback and the follow-up question."""

    model_config = ConfigDict(populate_by_name=True)

    score: int
    feedback: str = ""
    next_question: str = Field(alias="nextQuestion", min_length=1)


class ScoreOnly(BaseModel):
    score: int

    @classmethod
    def from_raw_content(cls, content: str) -> "ScoreOnly":  # Accept a bare number reply
        value = json.loads(content)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("score reply must be a number")
        if float(value) != int(value):
            raise ValueError("score reply must be an integer")
        return cls(score=int(value))


class QuestionOnly(BaseModel):
    question: str = Field(min_length=1)

    @classmethod
    def from_raw_content(cls, content: str) -> "QuestionOnly":  # Accept a plain text question
        return cls(question=content.strip().strip('"').strip())


class ToneRewrite(BaseModel):
    question: str = Field(min_length=1)

    @classmethod
    def from_raw_content(cls, content: str) -> "ToneRewrite":
        return cls(question=content.strip().strip('"').strip())


class WalletScore(BaseModel):
    score: float = Field(ge=0.0, le=5.0)
    summary: str = ""


__all__ = ["AgentEvaluation", "QuestionOnly", "ScoreOnly", "ToneRewrite", "WalletScore"]
