from __future__ import annotations  # Build configured agent strategies and bind them into the registry

import logging
from pathlib import Path
from typing import Any, Dict

from config.registry import KNOWLEDGE_AGENT_KEY, TONE_AGENT_KEY, VIBE_AGENT_KEY, WALLET_SCORER_KEY, bind_model
from config.routing import AppConfig, load_config, route_for
from config.settings import Settings, settings as default_settings
from interview.models import Axis
from .combined import CombinedScoringAgent
from .split import SplitScoringAgent
from .tone import ToneModifier
from .wallet import WalletActivityScorer

logger = logging.getLogger(__name__)

AXIS_KEYS: Dict[Axis, str] = {"knowledge": KNOWLEDGE_AGENT_KEY, "vibe": VIBE_AGENT_KEY}


def build_agents(cfg: AppConfig, settings: Settings = default_settings) -> Dict[str, Any]:
    """Instantiate every agent the app config enables, keyed by registry key."""

    agents: Dict[str, Any] = {}
    for axis, key in AXIS_KEYS.items():
        if cfg.agents.strategy == "combined":
            agents[key] = CombinedScoringAgent(axis, route_for(cfg, key))
        else:
            agents[key] = SplitScoringAgent(
                axis,
                scorer=route_for(cfg, f"{key}.score"),
                generator=route_for(cfg, f"{key}.question"),
            )
    if cfg.agents.tone_enabled:
        agents[TONE_AGENT_KEY] = ToneModifier(route_for(cfg, TONE_AGENT_KEY))
    if cfg.agents.wallet_bonus_enabled:
        if not settings.GOLDRUSH_API_KEY:
            logger.warning("Wallet bonus enabled but GOLDRUSH_API_KEY is unset; skipping wallet scorer")
        else:
            agents[WALLET_SCORER_KEY] = WalletActivityScorer(
                route_for(cfg, WALLET_SCORER_KEY),
                api_key=settings.GOLDRUSH_API_KEY,
                base_url=settings.GOLDRUSH_BASE_URL,
                chain=settings.WALLET_CHAIN,
            )
    return agents


def bind_agents_from_config(path: Path, settings: Settings = default_settings) -> Dict[str, Any]:
    """Load the app config at ``path`` and bind its agents into the registry."""

    cfg = load_config(path)
    agents = build_agents(cfg, settings)
    for key, agent in agents.items():
        bind_model(key, agent)
    logger.info("Bound agents strategy=%s keys=%s", cfg.agents.strategy, sorted(agents))
    return agents


__all__ = ["AXIS_KEYS", "bind_agents_from_config", "build_agents"]
