"""Failure taxonomy for browser actions and session management.

Every driver or provider failure that reaches a page object is one of the
classes below. ``FailureKind`` names them for outcome reporting.
"""

from enum import Enum
from typing import Optional

from harness.models.browser_models import Locator


class FailureKind(str, Enum):
    """Classified failure kinds."""

    ELEMENT_NOT_FOUND = "element_not_found"
    ELEMENT_NOT_INTERACTABLE = "element_not_interactable"
    NAVIGATION = "navigation"
    SESSION_CLOSED = "session_closed"
    PROVIDER = "provider"
    CONFIGURATION = "configuration"
    DRIVER = "driver"


class HarnessError(Exception):
    """Base class for all harness failures.

    Carries the operation and locator that failed so a failing test unit
    can report exactly what it was doing.
    """

    kind: FailureKind = FailureKind.DRIVER

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        locator: Optional[Locator] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.locator = locator

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.locator is not None:
            context.append(f"locator={self.locator}")
        if context:
            return f"{self.message} [{', '.join(context)}]"
        return self.message


class ElementNotFound(HarnessError):
    """Raised when resolution exhausted the wait budget."""

    kind = FailureKind.ELEMENT_NOT_FOUND


class ElementNotInteractable(HarnessError):
    """Raised when an element is present but cannot receive the action."""

    kind = FailureKind.ELEMENT_NOT_INTERACTABLE


class NavigationError(HarnessError):
    """Raised when the session cannot load a URL."""

    kind = FailureKind.NAVIGATION


class SessionClosed(HarnessError):
    """Raised when an operation is attempted after teardown."""

    kind = FailureKind.SESSION_CLOSED


class ProviderError(HarnessError):
    """Raised when the remote provider fails to open, report or close a job."""

    kind = FailureKind.PROVIDER


class ConfigurationError(HarnessError):
    """Raised for a missing or unrecognized execution configuration."""

    kind = FailureKind.CONFIGURATION


class DriverError(HarnessError):
    """Raised for unclassified driver I/O failures."""

    kind = FailureKind.DRIVER
