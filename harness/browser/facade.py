"""Driver-agnostic browser actions with explicit waits.

The ActionFacade is the single place where wait and retry policy lives.
Page objects hold a facade and call it; they never sleep or talk to the
driver directly.

PATTERN: Resolution result type. Lookups return a ``Resolution`` that is
either a found element or a classified failure; public operations unwrap it.
The only place a failure is turned into a value is ``is_displayed``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from harness.browser.driver import ActionKind, BrowserDriver, ElementProperty
from harness.browser.errors import (
    ElementNotFound,
    FailureKind,
    HarnessError,
    NavigationError,
    SessionClosed,
)
from harness.models.browser_models import Locator

if TYPE_CHECKING:
    from harness.session.lifecycle import SessionHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a locator: an element or a classified failure."""

    locator: Locator
    element: Any = None
    error: Optional[HarnessError] = None
    attempts: int = 0

    @property
    def found(self) -> bool:
        return self.error is None

    @property
    def failure(self) -> Optional[FailureKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> Any:
        """Return the element or raise the classified failure."""
        if self.error is not None:
            raise self.error
        return self.element


class ActionFacade:
    """Stable browser operations bound to one session handle.

    CRITICAL: One driver request in flight per session. Calls are
    serialized with a lock so concurrent coroutines in one test unit never
    interleave driver round-trips.
    """

    def __init__(
        self,
        handle: "SessionHandle",
        wait_timeout: float = 10.0,
        poll_interval: float = 0.25,
    ):
        """Initialize the facade.

        Args:
            handle: Session handle to operate against exclusively
            wait_timeout: Explicit wait budget for element resolution, seconds
            poll_interval: Delay between resolution attempts, seconds
        """
        if wait_timeout <= 0:
            raise ValueError("wait_timeout must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.handle = handle
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self._lock = asyncio.Lock()

    @property
    def driver(self) -> BrowserDriver:
        return self.handle.driver

    def _ensure_open(self, operation: str, locator: Optional[Locator] = None) -> None:
        if self.handle.closed:
            raise SessionClosed(
                f"Session for '{self.handle.test_id}' is closed",
                operation=operation,
                locator=locator,
            )

    async def _call(self, operation: str, locator: Optional[Locator], coro_fn, *args):
        """Run one driver round-trip under the session lock."""
        self._ensure_open(operation, locator)
        async with self._lock:
            self._ensure_open(operation, locator)
            try:
                return await coro_fn(*args)
            except HarnessError as e:
                if e.operation is None:
                    e.operation = operation
                if e.locator is None:
                    e.locator = locator
                raise

    async def visit(self, url: str) -> None:
        """Load a URL in the current session.

        Raises:
            SessionClosed: If the session was torn down
            NavigationError: If the session cannot load the page
        """
        self._ensure_open("visit")
        if not self.driver.alive:
            raise NavigationError(
                f"Cannot visit {url}: session is not alive", operation="visit"
            )
        logger.debug(f"[{self.handle.test_id}] visit {url}")
        await self._call("visit", None, self.driver.navigate, url)

    async def resolve(self, locator: Locator, operation: str = "find") -> Resolution:
        """Resolve a locator with the explicit wait algorithm.

        Attempts resolution repeatedly, sleeping ``poll_interval`` between
        attempts, until an element matches or ``wait_timeout`` has elapsed.
        Classified failures are returned, never raised.
        """
        start = time.monotonic()
        deadline = start + self.wait_timeout
        attempts = 0

        while True:
            attempts += 1
            try:
                elements = await self._call(operation, locator, self.driver.locate, locator)
            except HarnessError as e:
                return Resolution(locator=locator, error=e, attempts=attempts)

            if elements:
                # First match wins
                return Resolution(locator=locator, element=elements[0], attempts=attempts)

            now = time.monotonic()
            if now >= deadline:
                elapsed = now - start
                logger.debug(
                    f"[{self.handle.test_id}] {locator} not found after "
                    f"{attempts} attempts ({elapsed:.2f}s)"
                )
                return Resolution(
                    locator=locator,
                    error=ElementNotFound(
                        f"No element matched within {self.wait_timeout:.2f}s",
                        operation=operation,
                        locator=locator,
                    ),
                    attempts=attempts,
                )
            await asyncio.sleep(min(self.poll_interval, deadline - now))

    async def find(self, locator: Locator) -> Any:
        """Resolve exactly one element (the first match).

        Raises:
            ElementNotFound: If nothing matched within the wait budget
            SessionClosed: If the session was torn down
        """
        return (await self.resolve(locator, "find")).unwrap()

    async def click(self, locator: Locator) -> None:
        """Click an element.

        Raises:
            ElementNotFound: If nothing matched within the wait budget
            ElementNotInteractable: If the element cannot be clicked
        """
        element = (await self.resolve(locator, "click")).unwrap()
        logger.debug(f"[{self.handle.test_id}] click {locator}")
        await self._call(
            "click", locator, self.driver.element_action, element, ActionKind.CLICK
        )

    async def type(self, locator: Locator, text: str) -> None:
        """Replace the value of an input element with ``text``.

        Raises:
            ElementNotFound: If nothing matched within the wait budget
            ElementNotInteractable: If the element is not editable
        """
        element = (await self.resolve(locator, "type")).unwrap()
        logger.debug(f"[{self.handle.test_id}] type into {locator}")
        await self._call(
            "type", locator, self.driver.element_action, element, ActionKind.TYPE, (text,)
        )

    async def clear(self, locator: Locator) -> None:
        """Clear an input element."""
        element = (await self.resolve(locator, "clear")).unwrap()
        await self._call(
            "clear", locator, self.driver.element_action, element, ActionKind.CLEAR
        )

    async def is_displayed(self, locator: Locator) -> bool:
        """Whether an element is present and visible.

        An absent element yields ``False``. Every other failure kind
        propagates, including ``ElementNotInteractable``.
        """
        resolution = await self.resolve(locator, "is_displayed")
        if resolution.failure == FailureKind.ELEMENT_NOT_FOUND:
            return False
        element = resolution.unwrap()
        return bool(await self._read(locator, element, ElementProperty.VISIBLE))

    async def is_enabled(self, locator: Locator) -> bool:
        element = await self.find(locator)
        return bool(await self._read(locator, element, ElementProperty.ENABLED))

    async def text(self, locator: Locator) -> str:
        element = await self.find(locator)
        return await self._read(locator, element, ElementProperty.TEXT)

    async def value(self, locator: Locator) -> str:
        element = await self.find(locator)
        return await self._read(locator, element, ElementProperty.VALUE)

    async def attribute(self, locator: Locator, name: str) -> Optional[str]:
        element = await self.find(locator)
        return await self._read(locator, element, ElementProperty.ATTRIBUTE, name)

    async def title(self) -> str:
        return await self._call("title", None, self.driver.title)

    async def _read(
        self,
        locator: Locator,
        element: Any,
        prop: ElementProperty,
        name: Optional[str] = None,
    ) -> Any:
        return await self._call(
            f"read {prop.value}",
            locator,
            self.driver.element_state,
            element,
            prop,
            name,
        )
