"""Session lifecycle management for test units.

Each test unit owns exactly one SessionHandle from start to teardown:

    UNSTARTED -> RUNNING -> CLOSING -> CLOSED

Teardown runs on every exit path. For remote sessions the outcome is
reported to the provider before the job is stopped and before the driver
is terminated; each step is attempted even if an earlier one failed.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from harness.browser.driver import BrowserDriver
from harness.browser.errors import (
    ConfigurationError,
    HarnessError,
)
from harness.browser.facade import ActionFacade
from harness.browser.playwright_integration import PlaywrightManager
from harness.config.harness_config import HarnessConfig
from harness.models.browser_models import ExecutionMode, SessionDescriptor
from harness.models.execution_models import Outcome, OutcomeStatus
from harness.remote.provider import GridProvider, RemoteProvider

if TYPE_CHECKING:
    from harness.execution.registry import TestUnit

logger = logging.getLogger(__name__)

OutcomeHook = Callable[[Outcome], None]


class SessionState(str, Enum):
    """Lifecycle state of a session handle."""

    UNSTARTED = "unstarted"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class SessionHandle:
    """Live session binding, exclusively owned by one test unit."""

    test_id: str
    descriptor: SessionDescriptor
    driver: BrowserDriver
    job_id: Optional[str] = None
    state: SessionState = SessionState.RUNNING
    outcome: Optional[Outcome] = None
    teardown_errors: List[str] = field(default_factory=list)

    @property
    def remote(self) -> bool:
        return self.job_id is not None

    @property
    def closed(self) -> bool:
        return self.state != SessionState.RUNNING


def outcome_from_error(test_id: str, error: BaseException, duration_ms: int) -> Outcome:
    """Classify an exception raised by a test unit into an Outcome."""
    if isinstance(error, AssertionError):
        return Outcome(
            test_id=test_id,
            status=OutcomeStatus.FAIL,
            detail=f"AssertionError: {error}",
            failure_kind="assertion",
            duration_ms=duration_ms,
        )
    if isinstance(error, HarnessError):
        kind = error.kind.value
    else:
        kind = "exception"
    return Outcome(
        test_id=test_id,
        status=OutcomeStatus.ERROR,
        detail=f"{type(error).__name__}: {error}",
        failure_kind=kind,
        duration_ms=duration_ms,
    )


class SessionLifecycleManager:
    """Start, hand out and tear down browser sessions for test units.

    PATTERN: Explicit handle threading. The handle is passed to the facade
    and page objects; there is no module-level driver.
    CRITICAL: teardown() must run on every exit path.
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        playwright_manager: Optional[PlaywrightManager] = None,
        provider: Optional[RemoteProvider] = None,
        hooks: Optional[List[OutcomeHook]] = None,
    ):
        """Initialize the lifecycle manager.

        Args:
            config: Harness configuration (loaded from environment if None)
            playwright_manager: Manager for local browsers (created if None)
            provider: Remote provider used in REMOTE mode
            hooks: Post-run hooks, each invoked once per test unit outcome
        """
        self.config = config or HarnessConfig()
        self.playwright_manager = playwright_manager or PlaywrightManager(
            action_timeout=self.config.action_timeout,
            navigation_timeout=self.config.navigation_timeout,
        )
        self.provider = provider
        self.hooks: List[OutcomeHook] = list(hooks or [])
        self._handles: Dict[str, SessionHandle] = {}
        self._starting: set = set()

    @classmethod
    def from_config(
        cls, config: Optional[HarnessConfig] = None, hooks: Optional[List[OutcomeHook]] = None
    ) -> "SessionLifecycleManager":
        """Build a manager, wiring the grid provider when a job API is configured."""
        config = config or HarnessConfig()
        playwright_manager = PlaywrightManager(
            action_timeout=config.action_timeout,
            navigation_timeout=config.navigation_timeout,
        )
        provider = None
        if config.remote_api_url:
            provider = GridProvider(
                api_url=config.remote_api_url,
                playwright_manager=playwright_manager,
                username=config.remote_username,
                access_key=config.remote_access_key,
                timeout=config.remote_timeout,
            )
        return cls(
            config=config,
            playwright_manager=playwright_manager,
            provider=provider,
            hooks=hooks,
        )

    @property
    def open_handles(self) -> Dict[str, SessionHandle]:
        """Currently running handles keyed by owning test unit id."""
        return dict(self._handles)

    def add_hook(self, hook: OutcomeHook) -> None:
        self.hooks.append(hook)

    def describe(self, display_name: str, tags: Optional[List[str]] = None) -> SessionDescriptor:
        """Create a session descriptor from configuration.

        Raises:
            ConfigurationError: If the execution mode is missing or unrecognized
        """
        return self.config.session_descriptor(display_name, tags)

    async def start(
        self, test_id: str, descriptor: Optional[SessionDescriptor] = None
    ) -> SessionHandle:
        """Open the session for a test unit.

        Args:
            test_id: Owning test unit id
            descriptor: Session descriptor (built from configuration if None)

        Returns:
            Running session handle

        Raises:
            ConfigurationError: If the mode is invalid or REMOTE has no provider
            ProviderError: If the remote session cannot be opened
            DriverError: If the local browser cannot be started
            RuntimeError: If the test unit already owns a live session
        """
        descriptor = descriptor or self.describe(test_id)

        if descriptor.mode == ExecutionMode.REMOTE and self.provider is None:
            raise ConfigurationError(
                "REMOTE execution requires a remote provider; set REMOTE_API_URL",
                operation="start",
            )
        if test_id in self._handles or test_id in self._starting:
            raise RuntimeError(f"Test unit '{test_id}' already owns a live session")

        self._starting.add(test_id)
        try:
            if descriptor.mode == ExecutionMode.LOCAL:
                handle = await self._start_local(test_id, descriptor)
            else:
                handle = await self._start_remote(test_id, descriptor)
            self._handles[test_id] = handle
        finally:
            self._starting.discard(test_id)

        logger.info(
            f"Session started for '{test_id}' ({descriptor.mode.value}"
            f"{', job ' + handle.job_id if handle.job_id else ''})"
        )
        return handle

    async def _start_local(
        self, test_id: str, descriptor: SessionDescriptor
    ) -> SessionHandle:
        browser = await self.playwright_manager.launch_local(descriptor.capabilities)
        try:
            driver = await self.playwright_manager.open_driver(browser)
        except HarnessError:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser after failed start: {e}")
            raise
        return SessionHandle(test_id=test_id, descriptor=descriptor, driver=driver)

    async def _start_remote(
        self, test_id: str, descriptor: SessionDescriptor
    ) -> SessionHandle:
        session = await self.provider.open_session(descriptor.envelope())
        return SessionHandle(
            test_id=test_id,
            descriptor=descriptor,
            driver=session.driver,
            job_id=session.job_id,
        )

    def facade(self, handle: SessionHandle) -> ActionFacade:
        """Create the action facade bound to a handle."""
        return ActionFacade(
            handle,
            wait_timeout=self.config.wait_timeout,
            poll_interval=self.config.poll_interval,
        )

    def _notify(self, outcome: Outcome) -> None:
        for hook in self.hooks:
            try:
                hook(outcome)
            except Exception as e:
                logger.error(f"Outcome hook failed for '{outcome.test_id}': {e}")

    async def teardown(self, handle: SessionHandle, outcome: Outcome) -> None:
        """Close a session, reporting the outcome first when remote.

        Safe to call more than once: only the first call has any effect.

        Args:
            handle: Session to close
            outcome: Final outcome of the owning test unit
        """
        if handle.state in (SessionState.CLOSING, SessionState.CLOSED):
            logger.debug(f"Teardown for '{handle.test_id}' already done, skipping")
            return
        handle.state = SessionState.CLOSING
        handle.outcome = outcome

        try:
            self._notify(outcome)

            if handle.remote:
                try:
                    await self.provider.report_outcome(handle.job_id, outcome.passed)
                except Exception as e:
                    logger.error(f"Could not report outcome for job {handle.job_id}: {e}")
                    handle.teardown_errors.append(str(e))
                try:
                    await self.provider.close_job(handle.job_id)
                except Exception as e:
                    logger.error(f"Could not close job {handle.job_id}: {e}")
                    handle.teardown_errors.append(str(e))

            try:
                await handle.driver.close_session()
            except Exception as e:
                logger.error(f"Error closing driver for '{handle.test_id}': {e}")
                handle.teardown_errors.append(str(e))
        finally:
            handle.state = SessionState.CLOSED
            self._handles.pop(handle.test_id, None)

        logger.info(
            f"Session closed for '{handle.test_id}' ({outcome.status.value}"
            f"{', with teardown errors' if handle.teardown_errors else ''})"
        )

    @asynccontextmanager
    async def session(self, test_id: str, descriptor: Optional[SessionDescriptor] = None):
        """Run a block inside a session, tearing it down with the block's outcome.

        Example:
            async with lifecycle.session("login") as facade:
                await facade.visit("https://example.com")
            # Session closed, outcome reported
        """
        handle = await self.start(test_id, descriptor)
        started = time.monotonic()
        outcome: Optional[Outcome] = None
        try:
            yield self.facade(handle)
            outcome = Outcome(
                test_id=test_id,
                status=OutcomeStatus.PASS,
                duration_ms=int((time.monotonic() - started) * 1000),
                job_id=handle.job_id,
            )
        except Exception as e:
            outcome = outcome_from_error(
                test_id, e, int((time.monotonic() - started) * 1000)
            )
            outcome.job_id = handle.job_id
            raise
        finally:
            if outcome is None:
                outcome = Outcome(
                    test_id=test_id,
                    status=OutcomeStatus.ERROR,
                    detail="Interrupted",
                    failure_kind="cancelled",
                    job_id=handle.job_id,
                )
            await self.teardown(handle, outcome)

    async def run_test_unit(
        self, unit: "TestUnit", descriptor: Optional[SessionDescriptor] = None
    ) -> Outcome:
        """Run one test unit in its own session and return its outcome.

        Failures inside the unit become the outcome. Only a configuration
        error, raised before any session exists, propagates.

        Raises:
            ConfigurationError: If the execution mode is missing or unrecognized
        """
        descriptor = descriptor or self.describe(unit.display_name, unit.tags)
        started = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            handle = await self.start(unit.test_id, descriptor)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Could not start session for '{unit.test_id}': {e}")
            outcome = outcome_from_error(unit.test_id, e, elapsed_ms())
            self._notify(outcome)
            return outcome

        outcome: Optional[Outcome] = None
        try:
            await unit.body(self.facade(handle))
            outcome = Outcome(
                test_id=unit.test_id,
                status=OutcomeStatus.PASS,
                duration_ms=elapsed_ms(),
                job_id=handle.job_id,
            )
        except Exception as e:
            logger.info(f"Test unit '{unit.test_id}' failed: {e}")
            outcome = outcome_from_error(unit.test_id, e, elapsed_ms())
            outcome.job_id = handle.job_id
        finally:
            if outcome is None:
                outcome = Outcome(
                    test_id=unit.test_id,
                    status=OutcomeStatus.ERROR,
                    detail="Interrupted",
                    failure_kind="cancelled",
                    duration_ms=elapsed_ms(),
                    job_id=handle.job_id,
                )
            await self.teardown(handle, outcome)

        return outcome

    async def aclose(self) -> None:
        """Release the Playwright runtime and the provider client."""
        if self.provider is not None:
            await self.provider.aclose()
        await self.playwright_manager.cleanup()
