from __future__ import annotations  # Shared prompt helpers for bouncer agents

from contextlib import contextmanager
from typing import Iterator, List, Sequence

from interview.errors import AgentCallFailure, AgentTimeout, InvalidScoreRange, MalformedAgentOutput
from interview.models import BouncerConfig, ConversationEntry
from llm_gateway import LlmGatewayError, LlmOutputError, LlmTimeoutError

SCORE_MIN = 0
SCORE_MAX = 10


def transcript_lines(history: Sequence[ConversationEntry]) -> List[str]:  # Answered turns as Q/A blocks
    lines: List[str] = []
    for entry in history:
        if not entry.question or entry.answer is None:
            continue
        lines.append(f"Q: {clamp_text(entry.question)}\nA: {clamp_text(entry.answer)}")
    return lines


def transcript_text(history: Sequence[ConversationEntry]) -> str:
    lines = transcript_lines(history)
    return "\n".join(lines) if lines else "(no previous questions)"


def clamp_text(text: str, limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def project_brief(config: BouncerConfig) -> dict[str, str]:
    return {
        "project_desc": clamp_text(config.project_desc, limit=900),
        "mandatory_knowledge": clamp_text(config.mandatory_knowledge, limit=900),
        "whitepaper_knowledge": clamp_text(config.whitepaper_knowledge, limit=1500),
    }


def is_opening(history: Sequence[ConversationEntry], answer: str) -> bool:
    return not history and not (answer or "").strip()


def check_score(score: int, *, axis: str) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or not SCORE_MIN <= score <= SCORE_MAX:
        raise InvalidScoreRange(score, axis=axis)
    return score


@contextmanager
def agent_errors(axis: str) -> Iterator[None]:  # Map gateway failures onto the agent error taxonomy
    try:
        yield
    except LlmOutputError as exc:
        raise MalformedAgentOutput(f"{axis} agent output malformed: {exc}", axis=axis) from exc
    except LlmTimeoutError as exc:
        raise AgentTimeout(f"{axis} agent timed out: {exc}", axis=axis) from exc
    except LlmGatewayError as exc:
        raise AgentCallFailure(f"{axis} agent call failed: {exc}", axis=axis) from exc


__all__ = [
    "agent_errors",
    "check_score",
    "clamp_text",
    "is_opening",
    "project_brief",
    "transcript_lines",
    "transcript_text",
]
