"""Observability utilities for the bouncer interview stack."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
