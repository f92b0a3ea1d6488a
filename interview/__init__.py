"""Bouncer interview domain: state models, errors and the pass policy.

The LangGraph orchestrator lives in :mod:`interview.orchestrator` and is not
re-exported here because it depends on the ``agents`` package.
"""
from .errors import (
    AgentCallFailure,
    AgentTimeout,
    BouncerError,
    ConfigMissing,
    InterviewClosed,
    InterviewStateError,
    InvalidScoreRange,
    MalformedAgentOutput,
    SessionMissing,
    SignatureUnavailable,
)
from .models import (
    BouncerConfig,
    ConversationEntry,
    ConversationState,
    Evaluation,
    SessionData,
    TurnResult,
    pending_count,
)
from .policy import PassBar, PassPolicy, PolicyOutcome, load_policy

__all__ = [
    "AgentCallFailure",
    "AgentTimeout",
    "BouncerConfig",
    "BouncerError",
    "ConfigMissing",
    "ConversationEntry",
    "ConversationState",
    "Evaluation",
    "InterviewClosed",
    "InterviewStateError",
    "InvalidScoreRange",
    "MalformedAgentOutput",
    "PassBar",
    "PassPolicy",
    "PolicyOutcome",
    "SessionData",
    "SessionMissing",
    "SignatureUnavailable",
    "TurnResult",
    "load_policy",
    "pending_count",
]
