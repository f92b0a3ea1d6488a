from __future__ import annotations  # Bouncer interview turn orchestration using LangGraph

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from langgraph.graph import END, START, StateGraph

from agents.base import ScoringAgent, ToneAgent
from agents.toolkit import check_score
from observability import span
from .errors import AgentCallFailure, AgentTimeout, BouncerError, InterviewStateError, MalformedAgentOutput
from .models import Axis, BouncerConfig, ConversationEntry, ConversationState, Decision, Evaluation, TurnResult
from .policy import PassPolicy

logger = logging.getLogger(__name__)

MAX_SCORE = 10
WALLET_BONUS_WEIGHT = 0.2


class InterviewPhase(str, Enum):
    AWAITING_FIRST_QUESTION = "awaiting_first_question"
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETE = "complete"
    FAILED = "failed"


def phase_of(state: ConversationState) -> InterviewPhase:
    if state.final:
        return InterviewPhase.COMPLETE if state.access else InterviewPhase.FAILED
    if not state.history:
        return InterviewPhase.AWAITING_FIRST_QUESTION
    return InterviewPhase.AWAITING_ANSWER


class TurnState(TypedDict, total=False):  # Graph state for a single turn
    history: List[ConversationEntry]
    config: BouncerConfig
    answer: str
    wallet_bonus: float
    turn: int
    knowledge: Evaluation
    vibe: Evaluation
    knowledge_score: Optional[float]
    vibe_score: Optional[float]
    decision: Decision
    should_continue: bool
    next_question: Optional[str]
    events: List[Dict[str, Any]]


class InterviewOrchestrator:
    """Runs one interview turn: bootstrap, score, apply the pass policy, ask next.

    The orchestrator owns no state between turns. It receives the stored
    history, returns an updated copy and leaves persistence to the caller.
    """

    def __init__(
        self,
        knowledge: ScoringAgent,
        vibe: ScoringAgent,
        *,
        tone: Optional[ToneAgent] = None,
        policy: Optional[PassPolicy] = None,
        bypass_phrase: Optional[str] = None,
        agent_timeout_s: float = 30.0,
    ) -> None:
        self._agents: Dict[Axis, ScoringAgent] = {"knowledge": knowledge, "vibe": vibe}
        self._tone = tone
        self._policy = policy or PassPolicy()
        self._bypass_phrase = (bypass_phrase or "").strip().lower() or None
        self._timeout_s = agent_timeout_s
        self._graph = self._build_graph()

    @property
    def policy(self) -> PassPolicy:
        return self._policy

    def evaluate(
        self,
        history: Sequence[ConversationEntry],
        config: BouncerConfig,
        answer: str,
        *,
        wallet_bonus: float = 0.0,
    ) -> TurnResult:
        """Process ``answer`` against ``history`` and return the turn decision."""

        initial: TurnState = {
            "history": [entry.model_copy() for entry in history],
            "config": config,
            "answer": answer or "",
            "wallet_bonus": wallet_bonus,
            "turn": len(history),
            "events": [],
        }
        final = self._graph.invoke(initial)
        result = TurnResult(
            next_question=final.get("next_question"),
            decision=final["decision"],
            should_continue=final["should_continue"],
            updated_history=final["history"],
            knowledge_score=final.get("knowledge_score"),
            vibe_score=final.get("vibe_score"),
            feedback={
                axis: final[axis].feedback
                for axis in ("knowledge", "vibe")
                if final.get(axis) is not None and final[axis].feedback
            },
            events=final.get("events", []),
        )
        logger.info(
            "turn=%d decision=%s knowledge=%s vibe=%s",
            len(history),
            result.decision,
            result.knowledge_score,
            result.vibe_score,
        )
        return result

    # ------------------------------------------------------------------
    # Graph wiring
    # ------------------------------------------------------------------
    def _build_graph(self):
        graph = StateGraph(TurnState)
        graph.add_node("bootstrap", self._bootstrap)
        graph.add_node("bypass", self._bypass)
        graph.add_node("score", self._score)
        graph.add_node("fail", self._fail)
        graph.add_node("decide", self._decide)
        graph.add_node("ask_next", self._ask_next)
        graph.add_conditional_edges(
            START,
            self._route,
            {"bootstrap": "bootstrap", "bypass": "bypass", "score": "score"},
        )
        graph.add_edge("bootstrap", END)
        graph.add_edge("bypass", END)
        graph.add_conditional_edges("score", self._route_scores, {"fail": "fail", "decide": "decide"})
        graph.add_edge("fail", END)
        graph.add_conditional_edges("decide", self._route_decision, {"ask_next": "ask_next", "end": END})
        graph.add_edge("ask_next", END)
        return graph.compile()

    def _route(self, state: TurnState) -> str:
        history = state["history"]
        if not history:
            return "bootstrap"
        if not history[-1].pending or any(entry.pending for entry in history[:-1]):
            raise InterviewStateError("history has no pending question to answer")
        if self._bypass_phrase and self._bypass_phrase in state["answer"].lower():
            return "bypass"
        return "score"

    def _route_scores(self, state: TurnState) -> str:
        if self._policy.is_hard_fail(state["knowledge_score"], state["vibe_score"]):
            return "fail"
        return "decide"

    def _route_decision(self, state: TurnState) -> str:
        return "ask_next" if state["should_continue"] else "end"

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------
    def _bootstrap(self, state: TurnState) -> TurnState:
        events = list(state["events"])
        config = state["config"]
        with span(events, "opening.knowledge"):
            opening = self._agents["knowledge"].score([], config, "", "")
        question = self._require_question(opening, "knowledge")
        question = self._with_tone(question, config.character_choice, events)
        return {
            "history": [ConversationEntry(question=question, answer=None)],
            "decision": "pending",
            "should_continue": True,
            "next_question": question,
            "events": events,
        }

    def _bypass(self, state: TurnState) -> TurnState:
        logger.warning("Bypass phrase matched at turn %d; granting access", state["turn"])
        return {
            "history": _record_answer(state["history"], state["answer"]),
            "knowledge_score": float(MAX_SCORE),
            "vibe_score": float(MAX_SCORE),
            "decision": "complete",
            "should_continue": False,
            "next_question": None,
            "events": list(state["events"]) + [{"span": "bypass", "ms": 0, "ok": True}],
        }

    def _score(self, state: TurnState) -> TurnState:
        events = list(state["events"])
        history = state["history"]
        prior = history[:-1]
        question = history[-1].question
        evaluations = self._score_concurrently(prior, state["config"], question, state["answer"], events)
        bonus = state.get("wallet_bonus", 0.0) * WALLET_BONUS_WEIGHT
        return {
            "knowledge": evaluations["knowledge"],
            "vibe": evaluations["vibe"],
            "knowledge_score": _with_bonus(evaluations["knowledge"].score, bonus),
            "vibe_score": _with_bonus(evaluations["vibe"].score, bonus),
            "events": events,
        }

    def _fail(self, state: TurnState) -> TurnState:
        return {
            "decision": "failed",
            "should_continue": False,
            "next_question": None,
        }

    def _decide(self, state: TurnState) -> TurnState:
        outcome = self._policy.decide(state["turn"], state["knowledge_score"], state["vibe_score"])
        decision: Decision = "complete" if outcome.passed else ("pending" if outcome.should_continue else "failed")
        return {
            "history": _record_answer(state["history"], state["answer"]),
            "decision": decision,
            "should_continue": outcome.should_continue,
            "next_question": None,
        }

    def _ask_next(self, state: TurnState) -> TurnState:
        events = list(state["events"])
        weaker: Axis = "vibe" if state["knowledge_score"] > state["vibe_score"] else "knowledge"
        question = self._require_question(state[weaker], weaker)
        question = self._with_tone(question, state["config"].character_choice, events)
        return {
            "history": list(state["history"]) + [ConversationEntry(question=question, answer=None)],
            "next_question": question,
            "events": events,
        }

    # ------------------------------------------------------------------
    # Agent helpers
    # ------------------------------------------------------------------
    def _score_concurrently(
        self,
        prior: Sequence[ConversationEntry],
        config: BouncerConfig,
        question: str,
        answer: str,
        events: List[Dict[str, Any]],
    ) -> Dict[Axis, Evaluation]:
        def _run(axis: Axis) -> Evaluation:
            with span(events, f"score.{axis}"):
                evaluation = self._agents[axis].score(prior, config, question, answer)
            check_score(evaluation.score, axis=axis)
            return evaluation

        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="bouncer-score")
        try:
            futures = {axis: pool.submit(_run, axis) for axis in self._agents}
            deadline = time.monotonic() + self._timeout_s
            results: Dict[Axis, Evaluation] = {}
            for axis, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results[axis] = future.result(timeout=remaining)
                except FuturesTimeout:
                    raise AgentTimeout(f"{axis} agent exceeded {self._timeout_s}s", axis=axis) from None
                except BouncerError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    raise AgentCallFailure(f"{axis} agent failed: {exc}", axis=axis) from exc
            return results
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _with_tone(self, question: str, persona: str, events: List[Dict[str, Any]]) -> str:
        if self._tone is None:
            return question
        try:
            with span(events, "tone"):
                rewritten = self._tone.modify(question, persona)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Tone modifier failed, keeping original question: %s", exc)
            return question
        return rewritten.strip() or question

    @staticmethod
    def _require_question(evaluation: Evaluation, axis: Axis) -> str:
        question = (evaluation.next_question or "").strip()
        if not question:
            raise MalformedAgentOutput(f"{axis} agent returned no question", axis=axis)
        return question


def _record_answer(history: Sequence[ConversationEntry], answer: str) -> List[ConversationEntry]:
    updated = [entry.model_copy() for entry in history]
    updated[-1] = updated[-1].model_copy(update={"answer": answer})
    return updated


def _with_bonus(score: int, bonus: float) -> float:
    return min(float(MAX_SCORE), score + bonus)


__all__ = [
    "InterviewOrchestrator",
    "InterviewPhase",
    "MAX_SCORE",
    "TurnState",
    "WALLET_BONUS_WEIGHT",
    "phase_of",
]
