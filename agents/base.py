"""Capability contracts shared by scoring and tone agents."""
from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from interview.models import Axis, BouncerConfig, ConversationEntry, Evaluation


@runtime_checkable
class ScoringAgent(Protocol):
    """Scores one axis of an answer and proposes the next question.

    ``history`` holds the answered turns before ``question``. With an empty
    history and an empty answer the agent only produces an opening question
    and the returned score carries no meaning.
    """

    axis: Axis

    def score(
        self,
        history: Sequence[ConversationEntry],
        config: BouncerConfig,
        question: str,
        answer: str,
    ) -> Evaluation: ...


@runtime_checkable
class ToneAgent(Protocol):
    def modify(self, question: str, persona: str) -> str: ...


__all__ = ["ScoringAgent", "ToneAgent"]
