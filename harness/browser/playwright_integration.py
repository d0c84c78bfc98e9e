"""Playwright runtime management.

This module provides the PlaywrightManager class which owns the Playwright
runtime, launches local browsers, attaches to remote browsers and opens an
isolated page for each test unit wrapped in a ``PlaywrightDriver``.

CRITICAL: Proper cleanup is essential to avoid resource leaks.
"""

import asyncio
from playwright.async_api import (
    async_playwright,
    Browser,
    Playwright,
)
from typing import Optional, Dict, Any, List
import logging

from harness.browser.driver import PlaywrightDriver
from harness.browser.errors import DriverError
from harness.models.browser_models import BrowserType, CapabilityOptions

logger = logging.getLogger(__name__)


class PlaywrightManager:
    """Manage the Playwright runtime and the browsers it starts.

    PATTERN: One browser per test unit, so closing a session never affects
    a sibling unit running concurrently.

    CRITICAL: Always call cleanup() or use as async context manager to ensure
    proper resource cleanup.
    """

    def __init__(self, action_timeout: float = 2.0, navigation_timeout: float = 30.0):
        """Initialize the Playwright manager.

        Args:
            action_timeout: Seconds an element may take to accept an action
            navigation_timeout: Seconds a page may take to load
        """
        self.playwright: Optional[Playwright] = None
        self.browsers: List[Browser] = []
        self.action_timeout = action_timeout
        self.navigation_timeout = navigation_timeout
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.cleanup()

    async def initialize(self) -> None:
        """Start the Playwright runtime once.

        Raises:
            DriverError: If initialization fails
        """
        async with self._init_lock:
            if self._initialized:
                return

            try:
                self.playwright = await async_playwright().start()
                self._initialized = True
                logger.info("Playwright initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize Playwright: {e}")
                raise DriverError(
                    f"Playwright initialization failed: {e}", operation="initialize"
                ) from e

    def _launcher(self, browser_type: BrowserType) -> Any:
        return getattr(self.playwright, browser_type.value)

    async def launch_local(self, capabilities: CapabilityOptions) -> Browser:
        """Launch a dedicated local browser for one session.

        Args:
            capabilities: Browser identity and launch options

        Returns:
            Browser instance

        Raises:
            DriverError: If the browser fails to launch
        """
        if not self._initialized:
            await self.initialize()

        options = capabilities.launch_options()
        try:
            browser = await self._launcher(capabilities.engine).launch(**options)
        except Exception as e:
            logger.error(f"Failed to launch {capabilities.browser_name.value}: {e}")
            raise DriverError(
                f"Browser launch failed: {e}", operation="launch"
            ) from e

        self.browsers.append(browser)
        logger.info(
            f"Launched {capabilities.browser_name.value} browser "
            f"(headless={capabilities.headless})"
        )
        return browser

    async def connect_remote(
        self,
        ws_endpoint: str,
        browser_type: BrowserType = BrowserType.CHROMIUM,
        headers: Optional[Dict[str, str]] = None,
    ) -> Browser:
        """Attach to a browser hosted by a remote provider.

        Args:
            ws_endpoint: Provider websocket endpoint for the session
            browser_type: Engine of the remote browser
            headers: Extra connection headers (e.g. authorization)

        Returns:
            Browser instance bound to the remote session

        Raises:
            DriverError: If the connection fails
        """
        if not self._initialized:
            await self.initialize()

        engine = CapabilityOptions(browser_name=browser_type).engine
        try:
            browser = await self._launcher(engine).connect(
                ws_endpoint, headers=headers or {}
            )
        except Exception as e:
            logger.error(f"Failed to connect to remote browser: {e}")
            raise DriverError(
                f"Remote browser connection failed: {e}", operation="connect"
            ) from e

        self.browsers.append(browser)
        logger.info(f"Connected to remote {engine.value} browser")
        return browser

    async def open_driver(self, browser: Browser, **context_options: Any) -> PlaywrightDriver:
        """Open an isolated context and page on a browser.

        CRITICAL: Each test unit gets its own context to prevent interference.

        Args:
            browser: Browser to open the page in (closed with the driver)
            **context_options: Additional context options (viewport, locale, ...)

        Returns:
            Driver bound to the new page

        Raises:
            DriverError: If context or page creation fails
        """
        try:
            context = await browser.new_context(**context_options)
            page = await context.new_page()
        except Exception as e:
            logger.error(f"Failed to open page: {e}")
            raise DriverError(f"Page creation failed: {e}", operation="open") from e

        logger.debug(f"Opened page in context {id(context)}")
        return PlaywrightDriver(
            page=page,
            context=context,
            browser=browser,
            action_timeout=self.action_timeout,
            navigation_timeout=self.navigation_timeout,
            on_close=lambda: self.release(browser),
        )

    def release(self, browser: Browser) -> None:
        """Stop tracking a browser its driver has already closed."""
        if browser in self.browsers:
            self.browsers.remove(browser)
            logger.debug(f"Released browser, {len(self.browsers)} still tracked")

    async def cleanup(self) -> None:
        """Close any browsers still open and stop Playwright.

        CRITICAL: Must be called to prevent resource leaks.

        Raises:
            DriverError: If cleanup fails
        """
        errors = []

        for browser in list(self.browsers):
            try:
                if browser.is_connected():
                    await browser.close()
            except Exception as e:
                errors.append(f"Failed to close browser: {e}")
        self.browsers.clear()

        if self.playwright:
            try:
                await self.playwright.stop()
                logger.info("Playwright stopped successfully")
            except Exception as e:
                errors.append(f"Failed to stop Playwright: {e}")
            self.playwright = None

        self._initialized = False

        if errors:
            error_msg = "; ".join(errors)
            logger.warning(f"Cleanup completed with errors: {error_msg}")
            raise DriverError(f"Cleanup errors: {error_msg}", operation="cleanup")
        logger.info("Cleanup completed successfully")
