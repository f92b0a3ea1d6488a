from __future__ import annotations  # Single-call scoring agent returning score, feedback and next question

import logging
from typing import Sequence

from config.routing import LlmRoute
from interview.models import Axis, BouncerConfig, ConversationEntry, Evaluation
from llm_gateway import call
from .prompts import EVALUATE_PROMPT, OPENING_TASK, QUESTION_PROMPT, instructions_for
from .toolkit import agent_errors, check_score, clamp_text, is_opening, project_brief, transcript_text
from .types import AgentEvaluation, QuestionOnly

logger = logging.getLogger(__name__)


class CombinedScoringAgent:  # One LLM round trip per turn and axis
    def __init__(self, axis: Axis, route: LlmRoute) -> None:
        self.axis = axis
        self._route = route
        self._instructions = instructions_for(axis)

    def score(
        self,
        history: Sequence[ConversationEntry],
        config: BouncerConfig,
        question: str,
        answer: str,
    ) -> Evaluation:
        if is_opening(history, answer):
            return Evaluation(score=0, next_question=self._opening_question(config))
        task = EVALUATE_PROMPT.format(
            instructions=self._instructions,
            history=transcript_text(history),
            question=clamp_text(question),
            answer=clamp_text(answer, limit=1500),
            **project_brief(config),
        )
        with agent_errors(self.axis):
            result = call(task, AgentEvaluation, cfg=self._route)
        score = check_score(result.score, axis=self.axis)
        logger.debug("axis=%s score=%d", self.axis, score)
        return Evaluation(
            score=score,
            feedback=result.feedback.strip(),
            next_question=result.next_question.strip(),
        )

    def _opening_question(self, config: BouncerConfig) -> str:
        task = QUESTION_PROMPT.format(
            instructions=self._instructions,
            history=transcript_text([]),
            task=OPENING_TASK,
            **project_brief(config),
        )
        with agent_errors(self.axis):
            result = call(task, QuestionOnly, cfg=self._route)
        return result.question.strip()


__all__ = ["CombinedScoringAgent"]
