"""Scoring, tone and wallet agents used by the bouncer interview."""
from .base import ScoringAgent, ToneAgent
from .combined import CombinedScoringAgent
from .split import SplitScoringAgent
from .tone import ToneModifier
from .wallet import WalletActivityScorer

__all__ = [
    "CombinedScoringAgent",
    "ScoringAgent",
    "SplitScoringAgent",
    "ToneAgent",
    "ToneModifier",
    "WalletActivityScorer",
]
