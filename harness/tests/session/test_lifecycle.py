"""Tests for SessionLifecycleManager.

Covers local and remote start, teardown ordering and idempotence, outcome
classification and the post-run hook contract.
"""

import pytest
from unittest.mock import MagicMock

from harness.browser.errors import (
    ConfigurationError,
    DriverError,
    ElementNotFound,
    SessionClosed,
)
from harness.execution.registry import TestUnit
from harness.models.browser_models import ExecutionMode, Locator, SessionDescriptor
from harness.models.execution_models import Outcome, OutcomeStatus
from harness.session.lifecycle import (
    SessionLifecycleManager,
    SessionState,
    outcome_from_error,
)
from harness.tests.fakes import (
    FakeDriver,
    FakeElement,
    FakeProvider,
    make_config,
    make_playwright_manager,
)

LOGIN = Locator.id("login")


def driver_with_login():
    return FakeDriver(elements={LOGIN: [FakeElement("login")]})


@pytest.fixture
def events():
    return []


@pytest.fixture
def provider(events):
    return FakeProvider(events)


@pytest.fixture
def local_lifecycle():
    outcomes = []
    lifecycle = SessionLifecycleManager(
        config=make_config(),
        playwright_manager=make_playwright_manager(driver_with_login),
        hooks=[outcomes.append],
    )
    lifecycle.outcomes = outcomes
    return lifecycle


@pytest.fixture
def remote_lifecycle(provider):
    outcomes = []
    lifecycle = SessionLifecycleManager(
        config=make_config(execution_mode_value="REMOTE"),
        playwright_manager=make_playwright_manager(),
        provider=provider,
        hooks=[outcomes.append],
    )
    lifecycle.outcomes = outcomes
    return lifecycle


class TestLocalScenario:
    """mode=LOCAL, visit and click a present element."""

    @pytest.mark.asyncio
    async def test_pass_closes_driver_once_without_provider(self, local_lifecycle):
        provider = MagicMock()
        local_lifecycle.provider = provider

        async def body(browser):
            await browser.visit("https://example.com/login")
            await browser.click(LOGIN)

        outcome = await local_lifecycle.run_test_unit(TestUnit("login", body))

        assert outcome.status == OutcomeStatus.PASS
        driver = local_lifecycle.playwright_manager.drivers[0]
        assert driver.visited == ["https://example.com/login"]
        assert driver.close_count == 1
        assert provider.mock_calls == []
        assert local_lifecycle.outcomes == [outcome]
        assert local_lifecycle.open_handles == {}

    @pytest.mark.asyncio
    async def test_descriptor_uses_display_name(self, local_lifecycle):
        handle = await local_lifecycle.start(
            "login", local_lifecycle.describe("Login works", ["smoke"])
        )

        assert handle.descriptor.display_name == "Login works"
        assert handle.descriptor.mode == ExecutionMode.LOCAL
        assert handle.remote is False
        local_lifecycle.playwright_manager.launch_local.assert_called_once_with(
            handle.descriptor.capabilities
        )


class TestRemoteScenario:
    """mode=REMOTE, status reporting and teardown ordering."""

    @pytest.mark.asyncio
    async def test_failed_assertion_reported_before_close(
        self, remote_lifecycle, provider, events
    ):
        async def body(browser):
            await browser.visit("https://example.com")
            assert await browser.title() == "Dashboard"

        outcome = await remote_lifecycle.run_test_unit(
            TestUnit("dashboard", body, display_name="Dashboard loads")
        )

        assert outcome.status == OutcomeStatus.FAIL
        assert outcome.job_id == "job-1"
        assert provider.reports == [("job-1", False)]
        assert events == [
            "open job-1",
            "report job-1 False",
            "close job-1",
            "driver.close",
        ]
        assert provider.envelopes[0].name == "Dashboard loads"

    @pytest.mark.asyncio
    async def test_pass_reported(self, remote_lifecycle, provider):
        async def body(browser):
            await browser.visit("https://example.com")

        outcome = await remote_lifecycle.run_test_unit(TestUnit("home", body))

        assert outcome.passed
        assert provider.reports == [("job-1", True)]
        assert provider.closed_jobs == ["job-1"]

    @pytest.mark.asyncio
    async def test_report_failure_still_closes_everything(
        self, remote_lifecycle, provider, events
    ):
        provider.report_error = RuntimeError("503 from provider")

        async def body(browser):
            pass

        outcome = await remote_lifecycle.run_test_unit(TestUnit("home", body))

        assert outcome.status == OutcomeStatus.PASS
        assert events[-2:] == ["close job-1", "driver.close"]
        assert provider.drivers[0].close_count == 1

    @pytest.mark.asyncio
    async def test_unclassified_report_failure_still_closes_everything(
        self, remote_lifecycle, provider, events
    ):
        async def reset_connection(job_id, passed):
            events.append(f"report {job_id} {passed}")
            raise RuntimeError("connection reset")

        provider.report_outcome = reset_connection

        async def body(browser):
            pass

        outcome = await remote_lifecycle.run_test_unit(TestUnit("home", body))

        assert outcome.status == OutcomeStatus.PASS
        assert events == [
            "open job-1",
            "report job-1 True",
            "close job-1",
            "driver.close",
        ]
        assert provider.closed_jobs == ["job-1"]
        assert provider.drivers[0].close_count == 1
        assert remote_lifecycle.open_handles == {}

    @pytest.mark.asyncio
    async def test_unclassified_close_job_failure_still_closes_driver(
        self, remote_lifecycle, provider
    ):
        async def broken_close(job_id):
            raise KeyError(job_id)

        provider.close_job = broken_close
        handle = await remote_lifecycle.start("home")

        await remote_lifecycle.teardown(
            handle, Outcome(test_id="home", status=OutcomeStatus.FAIL)
        )

        assert provider.reports == [("job-1", False)]
        assert provider.drivers[0].close_count == 1
        assert len(handle.teardown_errors) == 1

    @pytest.mark.asyncio
    async def test_close_job_failure_still_closes_driver(self, remote_lifecycle, provider):
        provider.close_error = RuntimeError("timeout")
        handle = await remote_lifecycle.start("home")

        await remote_lifecycle.teardown(
            handle, Outcome(test_id="home", status=OutcomeStatus.PASS)
        )

        assert handle.state == SessionState.CLOSED
        assert provider.drivers[0].close_count == 1
        assert len(handle.teardown_errors) == 1

    @pytest.mark.asyncio
    async def test_open_failure_is_error_outcome(self, remote_lifecycle, provider):
        provider.open_error = RuntimeError("concurrency quota exceeded")

        async def body(browser):
            pass

        outcome = await remote_lifecycle.run_test_unit(TestUnit("home", body))

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.failure_kind == "provider"
        assert remote_lifecycle.outcomes == [outcome]
        assert remote_lifecycle.open_handles == {}

    @pytest.mark.asyncio
    async def test_remote_without_provider(self):
        lifecycle = SessionLifecycleManager(
            config=make_config(execution_mode_value="REMOTE"),
            playwright_manager=make_playwright_manager(),
        )

        with pytest.raises(ConfigurationError):
            await lifecycle.start("home")


class TestConfiguration:
    """Missing or unknown mode fails before any handle exists."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [None, "", "CLOUD"])
    async def test_configuration_error_before_session(self, mode):
        manager = make_playwright_manager()
        lifecycle = SessionLifecycleManager(
            config=make_config(execution_mode_value=mode),
            playwright_manager=manager,
        )
        body_calls = []

        async def body(browser):
            body_calls.append(browser)

        with pytest.raises(ConfigurationError):
            await lifecycle.run_test_unit(TestUnit("home", body))

        manager.launch_local.assert_not_called()
        assert body_calls == []
        assert lifecycle.open_handles == {}


class TestTeardown:
    """Teardown idempotence and fail-fast after close."""

    @pytest.mark.asyncio
    async def test_teardown_twice(self, remote_lifecycle, provider):
        handle = await remote_lifecycle.start("home")
        outcome = Outcome(test_id="home", status=OutcomeStatus.FAIL)

        await remote_lifecycle.teardown(handle, outcome)
        await remote_lifecycle.teardown(handle, outcome)

        assert provider.reports == [("job-1", False)]
        assert provider.closed_jobs == ["job-1"]
        assert provider.drivers[0].close_count == 1
        assert remote_lifecycle.outcomes == [outcome]

    @pytest.mark.asyncio
    async def test_driver_close_failure_is_recorded(self, local_lifecycle):
        handle = await local_lifecycle.start("home")
        handle.driver.close_error = RuntimeError("browser crashed")

        await local_lifecycle.teardown(
            handle, Outcome(test_id="home", status=OutcomeStatus.PASS)
        )

        assert handle.state == SessionState.CLOSED
        assert handle.teardown_errors
        assert local_lifecycle.open_handles == {}

    @pytest.mark.asyncio
    async def test_hook_failure_does_not_block_teardown(self, local_lifecycle):
        def broken_hook(outcome):
            raise ValueError("hook bug")

        local_lifecycle.hooks.insert(0, broken_hook)
        handle = await local_lifecycle.start("home")

        await local_lifecycle.teardown(
            handle, Outcome(test_id="home", status=OutcomeStatus.PASS)
        )

        assert handle.driver.close_count == 1
        assert len(local_lifecycle.outcomes) == 1

    @pytest.mark.asyncio
    async def test_facade_fails_fast_after_teardown(self, local_lifecycle):
        handle = await local_lifecycle.start("home")
        facade = local_lifecycle.facade(handle)
        await local_lifecycle.teardown(
            handle, Outcome(test_id="home", status=OutcomeStatus.PASS)
        )

        with pytest.raises(SessionClosed):
            await facade.click(LOGIN)


class TestOwnership:
    """One live handle per test unit."""

    @pytest.mark.asyncio
    async def test_second_session_for_same_unit_rejected(self, local_lifecycle):
        await local_lifecycle.start("home")

        with pytest.raises(RuntimeError, match="already owns"):
            await local_lifecycle.start("home")

    @pytest.mark.asyncio
    async def test_handles_are_distinct(self, local_lifecycle):
        first = await local_lifecycle.start("a")
        second = await local_lifecycle.start("b")

        assert first.driver is not second.driver
        assert set(local_lifecycle.open_handles) == {"a", "b"}


class TestOutcomes:
    """Outcome classification."""

    @pytest.mark.asyncio
    async def test_element_not_found_is_error_with_locator(self, local_lifecycle):
        async def body(browser):
            await browser.click(Locator.css("#absent"))

        outcome = await local_lifecycle.run_test_unit(TestUnit("absent", body))

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.failure_kind == "element_not_found"
        assert "css=#absent" in outcome.detail
        assert "click" in outcome.detail
        assert local_lifecycle.playwright_manager.drivers[0].close_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_error(self, local_lifecycle):
        async def body(browser):
            raise KeyError("missing fixture")

        outcome = await local_lifecycle.run_test_unit(TestUnit("broken", body))

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.failure_kind == "exception"

    @pytest.mark.asyncio
    async def test_local_launch_failure_is_error(self, local_lifecycle):
        local_lifecycle.playwright_manager.launch_local.side_effect = DriverError(
            "no chromium binary"
        )

        async def body(browser):
            pass

        outcome = await local_lifecycle.run_test_unit(TestUnit("home", body))

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.failure_kind == "driver"
        assert local_lifecycle.outcomes == [outcome]

    def test_outcome_from_error(self):
        outcome = outcome_from_error(
            "t", ElementNotFound("gone", operation="find", locator=LOGIN), 12
        )

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.failure_kind == "element_not_found"
        assert outcome.duration_ms == 12
        assert "id=login" in outcome.detail


class TestSessionContextManager:
    @pytest.mark.asyncio
    async def test_session_passes(self, local_lifecycle):
        async with local_lifecycle.session("home") as browser:
            await browser.visit("https://example.com")
            assert await browser.is_displayed(LOGIN)

        assert local_lifecycle.outcomes[0].status == OutcomeStatus.PASS
        assert local_lifecycle.playwright_manager.drivers[0].close_count == 1

    @pytest.mark.asyncio
    async def test_session_failure_reraised_and_reported(self, remote_lifecycle, provider):
        descriptor = SessionDescriptor(mode=ExecutionMode.REMOTE, display_name="home")

        with pytest.raises(AssertionError):
            async with remote_lifecycle.session("home", descriptor):
                assert False, "page did not load"

        assert provider.reports == [("job-1", False)]
        assert remote_lifecycle.outcomes[0].status == OutcomeStatus.FAIL
