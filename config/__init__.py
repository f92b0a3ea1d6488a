"""Configuration package for bouncer services."""
from .registry import (
    KNOWLEDGE_AGENT_KEY,
    TONE_AGENT_KEY,
    VIBE_AGENT_KEY,
    WALLET_SCORER_KEY,
    bind_model,
    get_model,
    unbind_model,
)
from .routing import AgentSettings, AppConfig, LlmRoute, load_config, resolve_registry, route_for
from .settings import Settings, settings

__all__ = [
    "AgentSettings",
    "AppConfig",
    "LlmRoute",
    "load_config",
    "resolve_registry",
    "route_for",
    "KNOWLEDGE_AGENT_KEY",
    "TONE_AGENT_KEY",
    "VIBE_AGENT_KEY",
    "WALLET_SCORER_KEY",
    "bind_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
