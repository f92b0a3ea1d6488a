from __future__ import annotations

import json
from pathlib import Path

import pytest

from agents import CombinedScoringAgent, SplitScoringAgent, ToneModifier, WalletActivityScorer
from agents.factory import bind_agents_from_config, build_agents
from config import load_config
from config.registry import KNOWLEDGE_AGENT_KEY, TONE_AGENT_KEY, VIBE_AGENT_KEY, WALLET_SCORER_KEY, get_model
from config.settings import Settings
from conftest import ROOT

ROUTE = {
    "name": "r",
    "base_url": "http://llm.local",
    "endpoint": "/v1/chat/completions",
    "model": "m",
    "timeout_s": 5,
}


def _write_config(tmp_path: Path, **agents) -> Path:
    registry = {
        key: "r"
        for key in (
            "agents.knowledge",
            "agents.vibe",
            "agents.knowledge.score",
            "agents.knowledge.question",
            "agents.vibe.score",
            "agents.vibe.question",
            "agents.tone",
            "agents.wallet_scorer",
        )
    }
    path = tmp_path / "app_config.json"
    path.write_text(json.dumps({"llm_routes": {"r": ROUTE}, "registry": registry, "agents": agents}), encoding="utf-8")
    return path


def test_combined_strategy_with_tone(tmp_path) -> None:
    agents = build_agents(load_config(_write_config(tmp_path)), Settings(_env_file=None))
    assert isinstance(agents[KNOWLEDGE_AGENT_KEY], CombinedScoringAgent)
    assert agents[VIBE_AGENT_KEY].axis == "vibe"
    assert isinstance(agents[TONE_AGENT_KEY], ToneModifier)
    assert WALLET_SCORER_KEY not in agents


def test_split_strategy_without_tone(tmp_path) -> None:
    cfg = load_config(_write_config(tmp_path, strategy="split", tone_enabled=False))
    agents = build_agents(cfg, Settings(_env_file=None))
    assert isinstance(agents[KNOWLEDGE_AGENT_KEY], SplitScoringAgent)
    assert TONE_AGENT_KEY not in agents


def test_wallet_scorer_needs_api_key(tmp_path) -> None:
    cfg = load_config(_write_config(tmp_path, wallet_bonus_enabled=True))
    assert WALLET_SCORER_KEY not in build_agents(cfg, Settings(_env_file=None))
    agents = build_agents(cfg, Settings(_env_file=None, GOLDRUSH_API_KEY="key"))
    assert isinstance(agents[WALLET_SCORER_KEY], WalletActivityScorer)


def test_bind_agents_from_config(tmp_path, fake_models) -> None:
    bind_agents_from_config(_write_config(tmp_path), Settings(_env_file=None))
    assert isinstance(get_model(KNOWLEDGE_AGENT_KEY), CombinedScoringAgent)


def test_missing_route_raises(tmp_path) -> None:
    path = tmp_path / "app_config.json"
    path.write_text(json.dumps({"llm_routes": {"r": ROUTE}, "registry": {}}), encoding="utf-8")
    with pytest.raises(KeyError):
        build_agents(load_config(path), Settings(_env_file=None))


def test_bundled_app_config_loads() -> None:
    agents = build_agents(load_config(ROOT / "app_config.json"), Settings(_env_file=None))
    assert {KNOWLEDGE_AGENT_KEY, VIBE_AGENT_KEY, TONE_AGENT_KEY} <= set(agents)
