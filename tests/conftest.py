import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import KNOWLEDGE_AGENT_KEY, TONE_AGENT_KEY, VIBE_AGENT_KEY, WALLET_SCORER_KEY, bind_model, unbind_model
from interview.models import BouncerConfig, ConversationEntry, Evaluation


class ScriptedAgent:
    """Scoring agent double replaying (score, next_question) pairs in order."""

    def __init__(self, axis: str, script: Sequence[Tuple[int, str]] = (), opener: Optional[str] = None) -> None:
        self.axis = axis
        self._script = list(script)
        self.opener = opener or f"{axis} opener?"
        self.calls: List[dict] = []

    def score(self, history, config, question, answer) -> Evaluation:
        self.calls.append({"history": list(history), "question": question, "answer": answer})
        if not history and not question and not answer:
            return Evaluation(score=0, next_question=self.opener)
        score, next_question = self._script.pop(0)
        return Evaluation(score=score, feedback=f"{self.axis} feedback", next_question=next_question)


class PersonaTone:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []

    def modify(self, question: str, persona: str) -> str:
        self.calls.append((question, persona))
        return f"[{persona}] {question}"


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def bouncer_config() -> BouncerConfig:
    return BouncerConfig(
        mandatory_knowledge="Staking locks tokens for 30 days.",
        project_desc="A community DAO for on-chain music royalties.",
        whitepaper_knowledge="Royalties are split by a bonding curve.",
        character_choice="a sarcastic nightclub bouncer",
    )


@pytest.fixture
def answered():
    def _make(count: int, pending: bool = True) -> List[ConversationEntry]:
        history = [ConversationEntry(question=f"q{i}", answer=f"a{i}") for i in range(count)]
        if pending:
            history.append(ConversationEntry(question=f"q{count}"))
        return history

    return _make


@pytest.fixture
def fake_models():
    knowledge = ScriptedAgent("knowledge")
    vibe = ScriptedAgent("vibe")
    bind_model(KNOWLEDGE_AGENT_KEY, knowledge)
    bind_model(VIBE_AGENT_KEY, vibe)
    try:
        yield knowledge, vibe
    finally:
        for key in (KNOWLEDGE_AGENT_KEY, VIBE_AGENT_KEY, TONE_AGENT_KEY, WALLET_SCORER_KEY):
            unbind_model(key)
