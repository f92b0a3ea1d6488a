from __future__ import annotations

import datetime as dt
import random
import sqlite3

import pytest
from eth_account import Account

from conftest import ScriptedAgent
from interview.errors import (
    AgentCallFailure,
    ConfigMissing,
    InterviewClosed,
    SessionMissing,
    SignatureUnavailable,
)
from interview.orchestrator import InterviewOrchestrator
import services.bouncer as bouncer_mod
from services.bouncer import BouncerService
from services.signing import recover_signer
from storage.projects import ProjectStore
from storage.sessions import InMemorySessionStore
from storage.turns import recent_turns

SIGNER_KEY = "0x" + "11" * 32
WALLET = "0x" + "ab" * 20
CONTRACT = "0x" + "33" * 20


class FakeWalletScorer:
    def __init__(self, score: float = 5.0, error: Exception | None = None) -> None:
        self._score = score
        self._error = error
        self.calls = []

    def score(self, wallet_address: str) -> float:
        self.calls.append(wallet_address)
        if self._error is not None:
            raise self._error
        return self._score


@pytest.fixture
def projects(bouncer_config) -> ProjectStore:
    store = ProjectStore()
    store.upsert_project("p1", bouncer_config, token_address=CONTRACT)
    return store


def _service(knowledge, vibe, projects, **kwargs) -> BouncerService:
    kwargs.setdefault("signing_key", SIGNER_KEY)
    kwargs.setdefault("rng", random.Random(1))
    return BouncerService(
        InterviewOrchestrator(knowledge, vibe),
        sessions=InMemorySessionStore(),
        projects=projects,
        **kwargs,
    )


def _pass_interview(service: BouncerService) -> None:
    service.register_session("alice")
    service.turn("p1", "alice", "")
    service.turn("p1", "alice", "first")
    outcome = service.turn("p1", "alice", "second")
    assert outcome.decision == "complete"


def test_full_interview_grants_access(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(6, "kq1"), (7, "kq2")])
    vibe = ScriptedAgent("vibe", [(8, "vq1"), (7, "vq2")])
    service = _service(knowledge, vibe, projects)
    service.register_session("alice")

    opening = service.turn("p1", "alice", "")
    assert opening.decision == "pending"
    assert opening.next_message == "knowledge opener?"

    second = service.turn("p1", "alice", "first answer")
    assert second.should_continue is True
    assert second.next_message == "kq1"

    final = service.turn("p1", "alice", "second answer")
    assert final.decision == "complete"
    assert final.next_message is None
    assert final.should_continue is False

    state = service.get_state("p1", "alice")
    assert state.final is True and state.access is True
    assert state.knowledge_score == 7.0
    assert [row["decision"] for row in recent_turns(10)] == ["complete", "pending", "pending"]


def test_failed_interview_closes_conversation(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(1, "kq1")])
    vibe = ScriptedAgent("vibe", [(8, "vq1")])
    service = _service(knowledge, vibe, projects)
    service.register_session("alice")
    service.turn("p1", "alice", "")

    outcome = service.turn("p1", "alice", "dunno")
    assert outcome.decision == "failed"
    assert outcome.next_message is None

    state = service.get_state("p1", "alice")
    assert state.final is True and state.access is False
    with pytest.raises(InterviewClosed):
        service.turn("p1", "alice", "let me in")


def test_reset_starts_over(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(1, "kq1")], opener="again?")
    vibe = ScriptedAgent("vibe", [(8, "vq1")])
    service = _service(knowledge, vibe, projects)
    service.register_session("alice")
    service.turn("p1", "alice", "")
    service.turn("p1", "alice", "dunno")

    outcome = service.turn("p1", "alice", "", reset=True)

    assert outcome.decision == "pending"
    assert outcome.next_message == "again?"
    assert len(service.get_state("p1", "alice").history) == 1


def test_missing_session_and_config(projects) -> None:
    service = _service(ScriptedAgent("knowledge"), ScriptedAgent("vibe"), projects)
    with pytest.raises(SessionMissing):
        service.turn("p1", "ghost", "")
    service.register_session("alice")
    with pytest.raises(ConfigMissing):
        service.turn("unknown", "alice", "")
    assert service.get_state("unknown", "alice") is None


def test_expired_session_is_missing(projects) -> None:
    now = dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc)
    times = [now, now + dt.timedelta(hours=4)]
    service = _service(
        ScriptedAgent("knowledge"),
        ScriptedAgent("vibe"),
        projects,
        clock=lambda: times[0],
    )
    service.register_session("alice")
    times[0] = times[1]
    with pytest.raises(SessionMissing):
        service.turn("p1", "alice", "")


def test_agent_failure_leaves_state_untouched(projects) -> None:
    class FlakyVibe(ScriptedAgent):
        def score(self, history, config, question, answer):
            if answer == "boom":
                raise AgentCallFailure("vibe unavailable", axis="vibe")
            return super().score(history, config, question, answer)

    knowledge = ScriptedAgent("knowledge", [(5, "kq1"), (5, "kq2")])
    vibe = FlakyVibe("vibe", [(5, "vq1")])
    service = _service(knowledge, vibe, projects)
    service.register_session("alice")
    service.turn("p1", "alice", "")
    before = service.get_state("p1", "alice")

    with pytest.raises(AgentCallFailure):
        service.turn("p1", "alice", "boom")

    assert service.get_state("p1", "alice") == before
    assert service.turn("p1", "alice", "retry").decision == "pending"


def test_wallet_bonus_computed_once_at_start(projects) -> None:
    scorer = FakeWalletScorer(score=5.0)
    knowledge = ScriptedAgent("knowledge", [(3, "kq1"), (3, "kq2")])
    vibe = ScriptedAgent("vibe", [(3, "vq1"), (3, "vq2")])
    service = _service(knowledge, vibe, projects, wallet_scorer=scorer)
    service.register_session("alice")

    service.turn("p1", "alice", "", wallet_address=WALLET)
    service.turn("p1", "alice", "one")
    outcome = service.turn("p1", "alice", "two")

    assert scorer.calls == [WALLET]
    assert outcome.decision == "complete"
    assert service.get_state("p1", "alice").wallet_bonus == 5.0


def test_wallet_bonus_failure_is_ignored(projects) -> None:
    scorer = FakeWalletScorer(error=AgentCallFailure("goldrush down", axis="wallet"))
    service = _service(ScriptedAgent("knowledge"), ScriptedAgent("vibe"), projects, wallet_scorer=scorer)
    service.register_session("alice")

    assert service.turn("p1", "alice", "", wallet_address=WALLET).decision == "pending"
    assert service.get_state("p1", "alice").wallet_bonus == 0.0


def test_wallet_bonus_bad_payload_is_ignored(projects) -> None:
    scorer = FakeWalletScorer(error=ValueError("could not convert string to float: 'n/a'"))
    service = _service(ScriptedAgent("knowledge"), ScriptedAgent("vibe"), projects, wallet_scorer=scorer)
    service.register_session("alice")

    assert service.turn("p1", "alice", "", wallet_address=WALLET).decision == "pending"
    assert service.get_state("p1", "alice").wallet_bonus == 0.0


def test_signature_issued_once_and_verifiable(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(7, "kq1"), (8, "kq2")])
    vibe = ScriptedAgent("vibe", [(7, "vq1"), (8, "vq2")])
    service = _service(knowledge, vibe, projects)
    _pass_interview(service)

    grant = service.issue_signature("p1", "alice", WALLET)
    again = service.issue_signature("p1", "alice", WALLET.upper().replace("0X", "0x"))

    assert again == grant
    assert grant.nonce == 1
    assert 680 <= grant.token_allocation <= 920
    signer = Account.from_key(SIGNER_KEY).address
    assert recover_signer(grant.signature, WALLET, grant.nonce, CONTRACT, grant.token_allocation) == signer


def test_signature_requires_passed_interview(projects) -> None:
    service = _service(ScriptedAgent("knowledge"), ScriptedAgent("vibe"), projects)
    service.register_session("alice")
    service.turn("p1", "alice", "")
    with pytest.raises(SignatureUnavailable):
        service.issue_signature("p1", "alice", WALLET)


def test_signature_requires_signing_key(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(7, "kq1"), (8, "kq2")])
    vibe = ScriptedAgent("vibe", [(7, "vq1"), (8, "vq2")])
    service = _service(knowledge, vibe, projects, signing_key=None)
    _pass_interview(service)
    with pytest.raises(SignatureUnavailable):
        service.issue_signature("p1", "alice", WALLET)


def test_signature_rejects_other_wallet_after_issue(projects) -> None:
    knowledge = ScriptedAgent("knowledge", [(7, "kq1"), (8, "kq2")])
    vibe = ScriptedAgent("vibe", [(7, "vq1"), (8, "vq2")])
    service = _service(knowledge, vibe, projects)
    _pass_interview(service)
    service.issue_signature("p1", "alice", WALLET)
    with pytest.raises(SignatureUnavailable):
        service.issue_signature("p1", "alice", "0x" + "cd" * 20)


def test_turn_survives_audit_log_failure(monkeypatch, projects) -> None:
    def broken_insert(**data):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(bouncer_mod, "insert_turn", broken_insert)
    knowledge = ScriptedAgent("knowledge", [(6, "kq1")])
    vibe = ScriptedAgent("vibe", [(8, "vq1")])
    service = _service(knowledge, vibe, projects)
    service.register_session("alice")

    service.turn("p1", "alice", "")
    outcome = service.turn("p1", "alice", "first answer")

    assert outcome.next_message == "kq1"
    history = service.get_state("p1", "alice").history
    assert [entry.answer for entry in history] == ["first answer", None]


def test_turn_locks_released_after_use(projects) -> None:
    service = _service(ScriptedAgent("knowledge"), ScriptedAgent("vibe"), projects)
    service.register_session("alice")
    service.turn("p1", "alice", "")

    with pytest.raises(SignatureUnavailable):
        service.issue_signature("p1", "alice", WALLET)

    assert bouncer_mod._TURN_LOCKS == {}
