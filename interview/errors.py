"""Error taxonomy for the bouncer interview core."""
from __future__ import annotations


class BouncerError(RuntimeError):
    """Base class for every error raised by the interview core."""


class ConfigMissing(BouncerError):
    def __init__(self, project_id: str) -> None:
        super().__init__(f"No bouncer config found for project {project_id}")
        self.project_id = project_id


class SessionMissing(BouncerError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User session not found for {user_id}")
        self.user_id = user_id


class InterviewClosed(BouncerError):
    """Raised when a turn arrives for a conversation that already ended."""


class InterviewStateError(BouncerError):
    """Raised when the stored history has no pending question to answer."""


class SignatureUnavailable(BouncerError):
    """Raised when a signature is requested for a session that cannot have one."""


class AgentCallFailure(BouncerError):
    """Network, status or parse failure from a scoring or tone agent.

    The turn is aborted without touching stored state, so callers may retry.
    """

    def __init__(self, message: str, *, axis: str | None = None) -> None:
        super().__init__(message)
        self.axis = axis


class AgentTimeout(AgentCallFailure):
    pass


class MalformedAgentOutput(AgentCallFailure):
    pass


class InvalidScoreRange(AgentCallFailure):
    def __init__(self, score: object, *, axis: str | None = None) -> None:
        super().__init__(f"Agent score {score!r} outside 0-10", axis=axis)
        self.score = score


__all__ = [
    "AgentCallFailure",
    "AgentTimeout",
    "BouncerError",
    "ConfigMissing",
    "InterviewClosed",
    "InterviewStateError",
    "InvalidScoreRange",
    "MalformedAgentOutput",
    "SessionMissing",
    "SignatureUnavailable",
]
