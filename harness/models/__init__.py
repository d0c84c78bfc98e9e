"""Models package for the acceptance-test harness."""

from .browser_models import (
    LocatorStrategy,
    ExecutionMode,
    JobVisibility,
    BrowserType,
    Locator,
    CapabilityOptions,
    CapabilityEnvelope,
    SessionDescriptor,
)
from .execution_models import (
    OutcomeStatus,
    Outcome,
    ExecutionPlan,
    AggregateResult,
    generate_seed,
)

__all__ = [
    # Browser models
    "LocatorStrategy",
    "ExecutionMode",
    "JobVisibility",
    "BrowserType",
    "Locator",
    "CapabilityOptions",
    "CapabilityEnvelope",
    "SessionDescriptor",
    # Execution models
    "OutcomeStatus",
    "Outcome",
    "ExecutionPlan",
    "AggregateResult",
    "generate_seed",
]
