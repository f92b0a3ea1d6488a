"""Turn-count gated pass/fail policy for bouncer interviews.

Thresholds are configuration rather than code: the defaults mirror the
production bouncer, but deployments tune them through ``config/policy.yaml``.
"""
from __future__ import annotations

import logging
import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


class PassBar(BaseModel):
    """Minimum scores required to pass once ``min_turn`` questions were asked."""

    min_turn: int = Field(ge=1)
    knowledge: float = Field(ge=0.0, le=10.0)
    vibe: float = Field(ge=0.0, le=10.0)

    def met_by(self, knowledge: float, vibe: float) -> bool:
        return knowledge >= self.knowledge and vibe >= self.vibe


def _default_bars() -> List[PassBar]:
    return [
        PassBar(min_turn=2, knowledge=4, vibe=4),
        PassBar(min_turn=3, knowledge=5, vibe=5),
        PassBar(min_turn=5, knowledge=6, vibe=6),
    ]


class PolicyOutcome(BaseModel):
    passed: bool
    should_continue: bool


class PassPolicy(BaseModel):
    """Escalating (knowledge, vibe) bars bounded by a minimum and maximum turn."""

    min_turns: int = Field(default=2, ge=1)
    max_turns: int = Field(default=5, ge=1)
    fail_at_or_below: float = Field(default=1.0, ge=0.0, le=10.0)
    bars: List[PassBar] = Field(default_factory=_default_bars)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PassPolicy":
        if self.max_turns < self.min_turns:
            raise ValueError("max_turns must be >= min_turns")
        self.bars.sort(key=lambda bar: bar.min_turn)
        if not self.bars or self.bars[0].min_turn > self.min_turns:
            raise ValueError("a pass bar must apply from min_turns onwards")
        return self

    def bar_for(self, turn: int) -> Optional[PassBar]:
        applicable = [bar for bar in self.bars if bar.min_turn <= turn]
        return applicable[-1] if applicable else None

    def is_hard_fail(self, knowledge: float, vibe: float) -> bool:
        return knowledge <= self.fail_at_or_below or vibe <= self.fail_at_or_below

    def decide(self, turn: int, knowledge: float, vibe: float) -> PolicyOutcome:
        """Apply the pass bars for ``turn`` (questions asked before this answer)."""

        if turn < self.min_turns:
            return PolicyOutcome(passed=False, should_continue=True)
        bar = self.bar_for(turn)
        passed = bar is not None and bar.met_by(knowledge, vibe)
        if turn >= self.max_turns:
            return PolicyOutcome(passed=passed, should_continue=False)
        return PolicyOutcome(passed=passed, should_continue=not passed)


def load_policy(path: str) -> PassPolicy:
    """Load the pass policy from YAML, falling back to defaults when absent."""

    if not os.path.exists(path):
        logger.info("Pass policy file %s not found; using defaults", path)
        return PassPolicy()
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return PassPolicy.model_validate(data)


__all__ = ["PassBar", "PassPolicy", "PolicyOutcome", "load_policy"]
