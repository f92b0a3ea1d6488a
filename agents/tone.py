from __future__ import annotations  # Tone modifier rewriting questions in the project's persona

import logging

from config.routing import LlmRoute
from interview.errors import AgentCallFailure
from llm_gateway import call
from .prompts import TONE_GUIDANCE, TONE_PROMPT
from .toolkit import agent_errors, clamp_text
from .types import ToneRewrite

logger = logging.getLogger(__name__)


class ToneModifier:  # Persona rewrite that never blocks a turn
    def __init__(self, route: LlmRoute) -> None:
        self._route = route

    def modify(self, question: str, persona: str) -> str:
        """Rewrite ``question`` in ``persona``'s voice, or return it unchanged on failure."""

        if not question.strip() or not persona.strip():
            return question
        task = TONE_PROMPT.format(
            instructions=TONE_GUIDANCE,
            question=clamp_text(question),
            persona=clamp_text(persona, limit=300),
        )
        try:
            with agent_errors("tone"):
                result = call(task, ToneRewrite, cfg=self._route)
        except AgentCallFailure as exc:
            logger.warning("Tone rewrite failed, keeping original question: %s", exc)
            return question
        rewritten = result.question.strip()
        return rewritten or question


__all__ = ["ToneModifier"]
