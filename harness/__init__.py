"""Parallel browser acceptance-test harness.

Page objects act through the ActionFacade, each test unit owns one session
managed by the SessionLifecycleManager, and the ExecutionCoordinator runs
many units concurrently in a reproducible, seed-derived order.
"""

from harness.browser import ActionFacade, PlaywrightManager
from harness.config import HarnessConfig
from harness.execution import (
    ExecutionCoordinator,
    TestRegistry,
    TestUnit,
    acceptance_test,
)
from harness.models import ExecutionPlan, Locator, Outcome, OutcomeStatus
from harness.session import SessionLifecycleManager

__version__ = "0.1.0"

__all__ = [
    "ActionFacade",
    "PlaywrightManager",
    "HarnessConfig",
    "ExecutionCoordinator",
    "TestRegistry",
    "TestUnit",
    "acceptance_test",
    "ExecutionPlan",
    "Locator",
    "Outcome",
    "OutcomeStatus",
    "SessionLifecycleManager",
]
