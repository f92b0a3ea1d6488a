"""Bouncer service: session bookkeeping around the interview orchestrator."""
from __future__ import annotations

import datetime as dt
import logging
import random
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from eth_utils import to_checksum_address
from pydantic import BaseModel

from config.registry import KNOWLEDGE_AGENT_KEY, TONE_AGENT_KEY, VIBE_AGENT_KEY, WALLET_SCORER_KEY, get_model
from config.settings import Settings, settings as default_settings
from interview.errors import (
    AgentCallFailure,
    BouncerError,
    InterviewClosed,
    SessionMissing,
    SignatureUnavailable,
)
from interview.models import ConversationState, Decision, SessionData, TurnResult
from interview.orchestrator import InterviewOrchestrator
from interview.policy import load_policy
from observability import log_event
from storage.nonces import next_nonce
from storage.projects import ProjectStore
from storage.sessions import SessionStore, SqliteSessionStore, session_key
from storage.turns import insert_turn
from services.allocation import allocate
from services.signing import sign_allocation

logger = logging.getLogger(__name__)


class _TurnLock:  # Lock plus count of callers holding or waiting on it
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


_TURN_LOCKS: Dict[str, _TurnLock] = {}
_TURN_LOCKS_GUARD = threading.Lock()


class TurnOutcome(BaseModel):
    next_message: Optional[str]
    should_continue: bool
    decision: Decision


class SignatureGrant(BaseModel):
    signature: str
    nonce: int
    token_allocation: int


@contextmanager
def _lock_for(user_id: str, project_id: str) -> Iterator[None]:
    """Serialize turns per (user, project); the entry is dropped once unused."""

    key = f"{user_id}:{project_id}"
    with _TURN_LOCKS_GUARD:
        entry = _TURN_LOCKS.get(key)
        if entry is None:
            entry = _TURN_LOCKS[key] = _TurnLock()
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _TURN_LOCKS_GUARD:
            entry.users -= 1
            if entry.users == 0:
                _TURN_LOCKS.pop(key, None)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class BouncerService:
    """Load session state, run one orchestrated turn and persist the outcome.

    Stored state is only rewritten after the orchestrator returns, so an agent
    failure leaves the conversation exactly as it was and the turn can be
    retried with the same answer.
    """

    def __init__(
        self,
        orchestrator: InterviewOrchestrator,
        *,
        sessions: SessionStore,
        projects: ProjectStore,
        wallet_scorer: Any = None,
        nonce_source: Callable[[str], int] = next_nonce,
        signing_key: Optional[str] = None,
        session_ttl_s: int = 180 * 60,
        base_allocation: int = 800,
        allocation_sigma: float = 2.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], dt.datetime] = _utcnow,
        record_turns: bool = True,
    ) -> None:
        self._orchestrator = orchestrator
        self._sessions = sessions
        self._projects = projects
        self._wallet_scorer = wallet_scorer
        self._nonce_source = nonce_source
        self._signing_key = signing_key
        self._ttl_s = session_ttl_s
        self._base_allocation = base_allocation
        self._sigma = allocation_sigma
        self._rng = rng or random.Random()
        self._clock = clock
        self._record_turns = record_turns

    @property
    def session_ttl_s(self) -> int:
        return self._ttl_s

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def register_session(self, user_id: str) -> SessionData:
        """Create (or replace) the user's session with a fresh TTL."""

        session = SessionData(started_at=self._clock())
        self._sessions.set(session_key(user_id), session, self._ttl_s)
        log_event("session_registered", user_id, ttl_s=self._ttl_s)
        return session

    def get_state(self, project_id: str, user_id: str) -> Optional[ConversationState]:
        session = self._load(user_id)
        return session.projects.get(project_id)

    def _load(self, user_id: str) -> SessionData:
        session = self._sessions.get(session_key(user_id))
        if session is None:
            raise SessionMissing(user_id)
        self._remaining_ttl(user_id, session)
        return session

    def _remaining_ttl(self, user_id: str, session: SessionData) -> float:
        elapsed = (self._clock() - session.started_at).total_seconds()
        remaining = self._ttl_s - elapsed
        if remaining <= 0:
            raise SessionMissing(user_id)
        return remaining

    def _save(self, user_id: str, session: SessionData) -> None:
        self._sessions.set(session_key(user_id), session, self._remaining_ttl(user_id, session))

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------
    def turn(
        self,
        project_id: str,
        user_id: str,
        answer: str,
        *,
        reset: bool = False,
        wallet_address: Optional[str] = None,
    ) -> TurnOutcome:
        with _lock_for(user_id, project_id):
            session = self._load(user_id)
            config = self._projects.get_bouncer_config(project_id)
            state = session.projects.get(project_id)
            if reset or state is None:
                state = ConversationState()
            if state.final:
                raise InterviewClosed(f"Interview for project {project_id} is already closed")

            turn_no = len(state.history)
            updates: Dict[str, Any] = {}
            if wallet_address:
                updates["wallet_address"] = wallet_address
            if not state.history:
                updates["wallet_bonus"] = self._wallet_bonus(user_id, project_id, wallet_address)
            state = state.model_copy(update=updates)

            try:
                result = self._orchestrator.evaluate(
                    state.history, config, answer, wallet_bonus=state.wallet_bonus
                )
            except BouncerError as exc:
                log_event(
                    "turn_failed",
                    user_id,
                    level=logging.WARNING,
                    project_id=project_id,
                    turn=turn_no,
                    error=str(exc),
                )
                raise

            updated = state.model_copy(
                update={
                    "history": result.updated_history,
                    "final": result.decision != "pending",
                    "access": result.decision == "complete",
                    "knowledge_score": (
                        result.knowledge_score if result.knowledge_score is not None else state.knowledge_score
                    ),
                    "vibe_score": result.vibe_score if result.vibe_score is not None else state.vibe_score,
                }
            )
            session.projects[project_id] = updated
            self._save(user_id, session)

            if self._record_turns:
                self._record_turn(user_id, project_id, turn_no, result)
            log_event(
                "turn",
                user_id,
                project_id=project_id,
                turn=turn_no,
                decision=result.decision,
                knowledge=result.knowledge_score,
                vibe=result.vibe_score,
            )
            next_message = result.next_question if result.decision == "pending" else None
            return TurnOutcome(
                next_message=next_message,
                should_continue=result.should_continue,
                decision=result.decision,
            )

    def _record_turn(self, user_id: str, project_id: str, turn_no: int, result: TurnResult) -> None:
        # Audit failures are logged, never raised: the session is already saved.
        try:
            insert_turn(
                user_id=user_id,
                project_id=project_id,
                turn=turn_no,
                decision=result.decision,
                knowledge_score=result.knowledge_score,
                vibe_score=result.vibe_score,
                next_question=result.next_question,
                events=result.events,
            )
        except sqlite3.Error as exc:
            log_event(
                "turn_log_failed",
                user_id,
                level=logging.ERROR,
                project_id=project_id,
                turn=turn_no,
                error=str(exc),
            )

    def _wallet_bonus(self, user_id: str, project_id: str, wallet_address: Optional[str]) -> float:
        if self._wallet_scorer is None or not wallet_address:
            return 0.0
        try:
            bonus = float(self._wallet_scorer.score(wallet_address))
        except (AgentCallFailure, ValueError) as exc:
            log_event(
                "wallet_bonus_failed",
                user_id,
                level=logging.WARNING,
                project_id=project_id,
                error=str(exc),
            )
            return 0.0
        return max(0.0, min(5.0, bonus))

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------
    def issue_signature(self, project_id: str, user_id: str, wallet_address: str) -> SignatureGrant:
        """Sign the token allocation for a passed interview, once per conversation."""

        with _lock_for(user_id, project_id):
            session = self._load(user_id)
            state = session.projects.get(project_id)
            if state is None or not (state.final and state.access):
                raise SignatureUnavailable("Interview not passed")
            try:
                wallet = to_checksum_address(wallet_address)
            except ValueError as exc:
                raise SignatureUnavailable(f"Invalid wallet address: {wallet_address}") from exc

            if state.signature and state.nonce is not None and state.token_allocation is not None:
                if state.wallet_address and to_checksum_address(state.wallet_address) != wallet:
                    raise SignatureUnavailable("Signature already issued to another wallet")
                return SignatureGrant(
                    signature=state.signature,
                    nonce=state.nonce,
                    token_allocation=state.token_allocation,
                )

            if not self._signing_key:
                raise SignatureUnavailable("Signing key not configured")
            contract = self._projects.get_token_address(project_id)
            if not contract:
                raise SignatureUnavailable(f"No token contract configured for project {project_id}")

            allocation = allocate(
                state.knowledge_score or 0.0,
                state.vibe_score or 0.0,
                base=self._base_allocation,
                sigma=self._sigma,
                rng=self._rng,
            )
            nonce = self._nonce_source(wallet)
            signature = sign_allocation(wallet, nonce, contract, allocation, self._signing_key)

            session.projects[project_id] = state.model_copy(
                update={
                    "signature": signature,
                    "nonce": nonce,
                    "token_allocation": allocation,
                    "wallet_address": wallet,
                }
            )
            self._save(user_id, session)
            log_event(
                "signature_issued",
                user_id,
                project_id=project_id,
                nonce=nonce,
                allocation=allocation,
            )
            return SignatureGrant(signature=signature, nonce=nonce, token_allocation=allocation)


def _optional_model(key: str) -> Any:
    try:
        return get_model(key)
    except KeyError:
        return None


def build_service(settings: Settings = default_settings) -> BouncerService:
    """Assemble a service from registry-bound agents and settings."""

    orchestrator = InterviewOrchestrator(
        get_model(KNOWLEDGE_AGENT_KEY),
        get_model(VIBE_AGENT_KEY),
        tone=_optional_model(TONE_AGENT_KEY),
        policy=load_policy(settings.POLICY_PATH),
        bypass_phrase=settings.BYPASS_PHRASE,
        agent_timeout_s=settings.AGENT_TIMEOUT_S,
    )
    return BouncerService(
        orchestrator,
        sessions=SqliteSessionStore(),
        projects=ProjectStore(),
        wallet_scorer=_optional_model(WALLET_SCORER_KEY),
        signing_key=settings.SIGNER_PRIVATE_KEY,
        session_ttl_s=settings.SESSION_TTL_SECONDS,
        base_allocation=settings.BASE_ALLOCATION,
        allocation_sigma=settings.ALLOCATION_SIGMA,
    )


_SERVICE: Optional[BouncerService] = None
_SERVICE_GUARD = threading.Lock()


def get_service() -> BouncerService:
    global _SERVICE
    with _SERVICE_GUARD:
        if _SERVICE is None:
            _SERVICE = build_service()
        return _SERVICE


def reset_service() -> None:
    global _SERVICE
    with _SERVICE_GUARD:
        _SERVICE = None


__all__ = [
    "BouncerService",
    "SignatureGrant",
    "TurnOutcome",
    "build_service",
    "get_service",
    "reset_service",
]
