"""Browser session lifecycle."""

from .lifecycle import (
    OutcomeHook,
    SessionHandle,
    SessionLifecycleManager,
    SessionState,
    outcome_from_error,
)

__all__ = [
    "OutcomeHook",
    "SessionHandle",
    "SessionLifecycleManager",
    "SessionState",
    "outcome_from_error",
]
