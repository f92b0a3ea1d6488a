"""In-memory registry for pluggable bouncer agents."""
from typing import Any, Dict

_REGISTRY: Dict[str, Any] = {}


def bind_model(key: str, impl: Any) -> None:
    """Bind an agent implementation to a registry key."""
    _REGISTRY[key] = impl


def get_model(key: str) -> Any:
    """Retrieve an implementation from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


KNOWLEDGE_AGENT_KEY = "agents.knowledge"
VIBE_AGENT_KEY = "agents.vibe"
TONE_AGENT_KEY = "agents.tone"
WALLET_SCORER_KEY = "agents.wallet_scorer"
