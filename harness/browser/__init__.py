"""Browser action layer.

This package provides:
- The driver capability interface and its Playwright implementation
- Playwright runtime management for local and remote browsers
- The ActionFacade with explicit waits and failure classification
- The failure taxonomy shared by sessions and actions
"""

from harness.browser.errors import (
    FailureKind,
    HarnessError,
    ElementNotFound,
    ElementNotInteractable,
    NavigationError,
    SessionClosed,
    ProviderError,
    ConfigurationError,
    DriverError,
)
from harness.browser.driver import (
    ActionKind,
    BrowserDriver,
    ElementProperty,
    PlaywrightDriver,
)
from harness.browser.facade import ActionFacade, Resolution
from harness.browser.playwright_integration import PlaywrightManager

__all__ = [
    "FailureKind",
    "HarnessError",
    "ElementNotFound",
    "ElementNotInteractable",
    "NavigationError",
    "SessionClosed",
    "ProviderError",
    "ConfigurationError",
    "DriverError",
    "ActionKind",
    "BrowserDriver",
    "ElementProperty",
    "PlaywrightDriver",
    "ActionFacade",
    "Resolution",
    "PlaywrightManager",
]
