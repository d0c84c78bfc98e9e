"""Tests for the grid provider job API client."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from harness.browser.errors import DriverError, ProviderError
from harness.models.browser_models import (
    BrowserType,
    CapabilityOptions,
    ExecutionMode,
    SessionDescriptor,
)
from harness.remote.provider import GridProvider

API_URL = "https://api.grid.example.com/v1"


class RecordingTransport:
    """Serve canned responses and record requests."""

    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.responses.get(key, (200, {}))
        return httpx.Response(status, json=body)


@pytest.fixture
def envelope():
    return SessionDescriptor(
        mode=ExecutionMode.REMOTE,
        capabilities=CapabilityOptions(browser_name=BrowserType.FIREFOX),
        display_name="Search returns results",
    ).envelope()


@pytest.fixture
def playwright_manager():
    manager = MagicMock()
    manager.connect_remote = AsyncMock(return_value=MagicMock(name="browser"))
    manager.open_driver = AsyncMock(return_value=MagicMock(name="driver"))
    return manager


def make_provider(transport, playwright_manager):
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return GridProvider(API_URL, playwright_manager, client=client)


@pytest.mark.asyncio
async def test_open_session(envelope, playwright_manager):
    transport = RecordingTransport(
        {
            ("POST", "/v1/jobs"): (
                201,
                {"job_id": "abc123", "ws_endpoint": "wss://grid.example.com/abc123"},
            )
        }
    )
    provider = make_provider(transport, playwright_manager)

    session = await provider.open_session(envelope)

    assert session.job_id == "abc123"
    assert session.driver is playwright_manager.open_driver.return_value
    body = json.loads(transport.requests[0].content)
    assert body["browserName"] == "firefox"
    assert body["options"]["name"] == "Search returns results"
    playwright_manager.connect_remote.assert_called_once_with(
        "wss://grid.example.com/abc123", BrowserType.FIREFOX
    )


@pytest.mark.asyncio
async def test_open_session_http_error(envelope, playwright_manager):
    transport = RecordingTransport({("POST", "/v1/jobs"): (429, {"error": "quota"})})
    provider = make_provider(transport, playwright_manager)

    with pytest.raises(ProviderError, match="Remote job creation failed"):
        await provider.open_session(envelope)

    playwright_manager.connect_remote.assert_not_called()


@pytest.mark.asyncio
async def test_open_session_malformed_response(envelope, playwright_manager):
    transport = RecordingTransport({("POST", "/v1/jobs"): (200, {"id": "x"})})
    provider = make_provider(transport, playwright_manager)

    with pytest.raises(ProviderError, match="Malformed"):
        await provider.open_session(envelope)


@pytest.mark.asyncio
async def test_attach_failure_stops_job(envelope, playwright_manager):
    transport = RecordingTransport(
        {("POST", "/v1/jobs"): (200, {"job_id": "j1", "ws_endpoint": "wss://x"})}
    )
    playwright_manager.connect_remote.side_effect = DriverError("refused")
    provider = make_provider(transport, playwright_manager)

    with pytest.raises(ProviderError, match="attach failed"):
        await provider.open_session(envelope)

    assert [(r.method, r.url.path) for r in transport.requests] == [
        ("POST", "/v1/jobs"),
        ("PUT", "/v1/jobs/j1/stop"),
    ]


@pytest.mark.asyncio
async def test_report_outcome(playwright_manager):
    transport = RecordingTransport()
    provider = make_provider(transport, playwright_manager)

    await provider.report_outcome("j1", False)

    request = transport.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/v1/jobs/j1"
    assert json.loads(request.content) == {"passed": False}


@pytest.mark.asyncio
async def test_report_outcome_failure(playwright_manager):
    transport = RecordingTransport({("PUT", "/v1/jobs/j1"): (500, {})})
    provider = make_provider(transport, playwright_manager)

    with pytest.raises(ProviderError, match="Reporting outcome failed"):
        await provider.report_outcome("j1", True)


@pytest.mark.asyncio
async def test_close_job(playwright_manager):
    transport = RecordingTransport()
    provider = make_provider(transport, playwright_manager)

    await provider.close_job("j1")
    await provider.aclose()

    assert transport.requests[0].url.path == "/v1/jobs/j1/stop"


@pytest.mark.asyncio
async def test_close_job_failure(playwright_manager):
    transport = RecordingTransport({("PUT", "/v1/jobs/j1/stop"): (404, {})})
    provider = make_provider(transport, playwright_manager)

    with pytest.raises(ProviderError):
        await provider.close_job("j1")
