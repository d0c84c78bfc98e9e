"""Driver capability interface and its Playwright implementation.

The action facade only ever talks to a ``BrowserDriver``. ``PlaywrightDriver``
adapts a Playwright page to that interface and classifies Playwright errors
into the harness failure taxonomy.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from harness.browser.errors import (
    DriverError,
    ElementNotInteractable,
    NavigationError,
)
from harness.models.browser_models import Locator

logger = logging.getLogger(__name__)

# Substrings of Playwright error messages that mean "present but not actionable"
NOT_INTERACTABLE_MARKERS = (
    "not visible",
    "not enabled",
    "not editable",
    "not attached",
    "not stable",
    "disabled",
    "intercepts pointer events",
    "outside of the viewport",
    "element is not an <input>",
)


class ActionKind(str, Enum):
    """Element actions supported by the driver."""

    CLICK = "click"
    TYPE = "type"
    CLEAR = "clear"


class ElementProperty(str, Enum):
    """Element state properties readable through the driver."""

    VISIBLE = "visible"
    ENABLED = "enabled"
    TEXT = "text"
    VALUE = "value"
    ATTRIBUTE = "attribute"


class BrowserDriver(ABC):
    """Abstract capability interface to a live browser session.

    Implementations wrap one browser page; they are never shared between
    test units.
    """

    @property
    @abstractmethod
    def alive(self) -> bool:
        """Whether the underlying session can still serve requests."""
        pass

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load a URL in the session.

        Raises:
            NavigationError: If the page cannot be loaded
        """
        pass

    @abstractmethod
    async def locate(self, locator: Locator) -> List[Any]:
        """Return every element currently matching the locator (may be empty).

        Raises:
            DriverError: On driver I/O failures
        """
        pass

    @abstractmethod
    async def element_action(
        self, handle: Any, kind: ActionKind, args: Sequence[Any] = ()
    ) -> None:
        """Perform an action on a located element.

        Raises:
            ElementNotInteractable: If the element rejects the action
            DriverError: On driver I/O failures
        """
        pass

    @abstractmethod
    async def element_state(
        self, handle: Any, prop: ElementProperty, name: Optional[str] = None
    ) -> Any:
        """Read a state property of a located element.

        Raises:
            DriverError: On driver I/O failures
        """
        pass

    @abstractmethod
    async def title(self) -> str:
        """Return the current document title."""
        pass

    @abstractmethod
    async def close_session(self) -> None:
        """Terminate the session and release its browser resources."""
        pass


def classify_action_error(
    error: Exception, operation: str, locator: Optional[Locator] = None
) -> Exception:
    """Map a Playwright action error onto the harness taxonomy."""
    if isinstance(error, PlaywrightTimeoutError):
        return ElementNotInteractable(
            f"Element did not accept {operation} in time: {error}",
            operation=operation,
            locator=locator,
        )
    message = str(error).lower()
    if any(marker in message for marker in NOT_INTERACTABLE_MARKERS):
        return ElementNotInteractable(
            f"Element cannot receive {operation}: {error}",
            operation=operation,
            locator=locator,
        )
    return DriverError(
        f"Driver failed during {operation}: {error}",
        operation=operation,
        locator=locator,
    )


class PlaywrightDriver(BrowserDriver):
    """Drive one Playwright page.

    PATTERN: One isolated context per test unit, closed with the session
    CRITICAL: close_session() must be called to release the context
    """

    def __init__(
        self,
        page: Page,
        context: BrowserContext,
        browser: Optional[Browser] = None,
        action_timeout: float = 2.0,
        navigation_timeout: float = 30.0,
        on_close: Optional[Callable[[], None]] = None,
    ):
        """Initialize the driver.

        Args:
            page: Page to drive
            context: Context owning the page
            browser: Browser to close with the session (None if shared)
            action_timeout: Seconds an element may take to accept an action
            navigation_timeout: Seconds a page may take to load
            on_close: Called once after the session closed, even if closing failed
        """
        self.page = page
        self.context = context
        self.browser = browser
        self.action_timeout_ms = int(action_timeout * 1000)
        self.navigation_timeout_ms = int(navigation_timeout * 1000)
        self.on_close = on_close
        self._closed = False

    @property
    def alive(self) -> bool:
        return not self._closed and not self.page.is_closed()

    async def navigate(self, url: str) -> None:
        try:
            await self.page.goto(url, timeout=self.navigation_timeout_ms)
            logger.debug(f"Navigated to {url}")
        except PlaywrightError as e:
            logger.error(f"Navigation to {url} failed: {e}")
            raise NavigationError(
                f"Navigation to {url} failed: {e}", operation="visit"
            ) from e

    async def locate(self, locator: Locator) -> List[ElementHandle]:
        try:
            return await self.page.query_selector_all(locator.to_selector())
        except PlaywrightError as e:
            raise DriverError(
                f"Element lookup failed: {e}", operation="locate", locator=locator
            ) from e

    async def element_action(
        self, handle: ElementHandle, kind: ActionKind, args: Sequence[Any] = ()
    ) -> None:
        try:
            if kind == ActionKind.CLICK:
                await handle.click(timeout=self.action_timeout_ms)
            elif kind == ActionKind.TYPE:
                await handle.fill(str(args[0]), timeout=self.action_timeout_ms)
            elif kind == ActionKind.CLEAR:
                await handle.fill("", timeout=self.action_timeout_ms)
            else:
                raise ValueError(f"Unsupported action: {kind}")
        except PlaywrightError as e:
            raise classify_action_error(e, kind.value) from e

    async def element_state(
        self, handle: ElementHandle, prop: ElementProperty, name: Optional[str] = None
    ) -> Any:
        try:
            if prop == ElementProperty.VISIBLE:
                return await handle.is_visible()
            if prop == ElementProperty.ENABLED:
                return await handle.is_enabled()
            if prop == ElementProperty.TEXT:
                return (await handle.inner_text()).strip()
            if prop == ElementProperty.VALUE:
                return await handle.input_value()
            if prop == ElementProperty.ATTRIBUTE:
                if not name:
                    raise ValueError("Attribute name is required")
                return await handle.get_attribute(name)
            raise ValueError(f"Unsupported property: {prop}")
        except PlaywrightError as e:
            raise DriverError(
                f"Reading {prop.value} failed: {e}", operation=f"read {prop.value}"
            ) from e

    async def title(self) -> str:
        try:
            return await self.page.title()
        except PlaywrightError as e:
            raise DriverError(f"Reading title failed: {e}", operation="title") from e

    async def close_session(self) -> None:
        """Close the context, then the browser this driver owns.

        Raises:
            DriverError: If any resource failed to close
        """
        if self._closed:
            return
        self._closed = True

        errors = []
        try:
            await self.context.close()
            logger.debug("Closed browser context")
        except Exception as e:
            errors.append(f"context: {e}")

        if self.browser is not None:
            try:
                await self.browser.close()
                logger.debug("Closed browser")
            except Exception as e:
                errors.append(f"browser: {e}")

        if self.on_close is not None:
            self.on_close()

        if errors:
            raise DriverError(
                f"Session close errors: {'; '.join(errors)}", operation="close"
            )
