from __future__ import annotations  # Scoring agent backed by separate score and question-generator routes

from typing import Sequence

from config.routing import LlmRoute
from interview.models import Axis, BouncerConfig, ConversationEntry, Evaluation
from llm_gateway import call
from .prompts import FOLLOWUP_TASK, OPENING_TASK, QUESTION_PROMPT, SCORE_PROMPT, instructions_for
from .toolkit import agent_errors, check_score, clamp_text, is_opening, project_brief, transcript_text
from .types import QuestionOnly, ScoreOnly


class SplitScoringAgent:  # Score-only call followed by a question-generator call
    def __init__(self, axis: Axis, *, scorer: LlmRoute, generator: LlmRoute) -> None:
        self.axis = axis
        self._scorer = scorer
        self._generator = generator
        self._instructions = instructions_for(axis)

    def score(
        self,
        history: Sequence[ConversationEntry],
        config: BouncerConfig,
        question: str,
        answer: str,
    ) -> Evaluation:
        if is_opening(history, answer):
            return Evaluation(score=0, next_question=self._question(history, config, OPENING_TASK))
        task = SCORE_PROMPT.format(
            instructions=self._instructions,
            history=transcript_text(history),
            question=clamp_text(question),
            answer=clamp_text(answer, limit=1500),
            **project_brief(config),
        )
        with agent_errors(self.axis):
            result = call(task, ScoreOnly, cfg=self._scorer)
        score = check_score(result.score, axis=self.axis)
        answered = list(history) + [ConversationEntry(question=question, answer=answer)]
        return Evaluation(score=score, next_question=self._question(answered, config, FOLLOWUP_TASK))

    def _question(self, history: Sequence[ConversationEntry], config: BouncerConfig, task_text: str) -> str:
        task = QUESTION_PROMPT.format(
            instructions=self._instructions,
            history=transcript_text(history),
            task=task_text,
            **project_brief(config),
        )
        with agent_errors(self.axis):
            result = call(task, QuestionOnly, cfg=self._generator)
        return result.question.strip()


__all__ = ["SplitScoringAgent"]
