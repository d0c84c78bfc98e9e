"""Remote browser provider abstraction and the grid job API client."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from harness.browser.driver import BrowserDriver
from harness.browser.errors import HarnessError, ProviderError
from harness.browser.playwright_integration import PlaywrightManager
from harness.models.browser_models import CapabilityEnvelope

logger = logging.getLogger(__name__)


@dataclass
class RemoteSession:
    """Driver bound to a remote session plus its provider job id."""

    driver: BrowserDriver
    job_id: str


class RemoteProvider(ABC):
    """
    Abstract interface to a service hosting browsers and recording job results.

    All failures surface as ProviderError.
    """

    @abstractmethod
    async def open_session(self, envelope: CapabilityEnvelope) -> RemoteSession:
        """
        Open a remote session.

        Args:
            envelope: Capability options wrapped with job metadata

        Returns:
            RemoteSession with a live driver and the job id

        Raises:
            ProviderError: If the session cannot be opened
        """
        pass

    @abstractmethod
    async def report_outcome(self, job_id: str, passed: bool) -> None:
        """
        Record the final pass/fail status of a job.

        Raises:
            ProviderError: If the status cannot be recorded
        """
        pass

    @abstractmethod
    async def close_job(self, job_id: str) -> None:
        """
        Stop a job on the provider.

        Raises:
            ProviderError: If the job cannot be stopped
        """
        pass

    async def aclose(self) -> None:
        """Release provider resources."""
        return None


class GridProvider(RemoteProvider):
    """
    Remote provider backed by a REST job API and a Playwright browser grid.

    PATTERN: HTTP-based API communication with async httpx
    GOTCHA: The job must receive its status before it is stopped, otherwise
    the provider records it without a result
    """

    def __init__(
        self,
        api_url: str,
        playwright_manager: PlaywrightManager,
        username: Optional[str] = None,
        access_key: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the grid provider.

        Args:
            api_url: Base URL of the job API
            playwright_manager: Manager used to attach to remote browsers
            username: Account user name
            access_key: Account access key
            timeout: HTTP timeout in seconds
            client: Preconfigured HTTP client (created if None)
        """
        self.api_url = api_url.rstrip("/")
        self.playwright_manager = playwright_manager
        auth = (username, access_key) if username and access_key else None
        self.client = client or httpx.AsyncClient(timeout=timeout, auth=auth)

    async def open_session(self, envelope: CapabilityEnvelope) -> RemoteSession:
        payload = envelope.to_payload()
        try:
            response = await self.client.post(f"{self.api_url}/jobs", json=payload)
            response.raise_for_status()
            data = response.json()
            job_id = str(data["job_id"])
            ws_endpoint = data["ws_endpoint"]
        except httpx.HTTPError as e:
            logger.error(f"Opening remote job '{envelope.name}' failed: {e}")
            raise ProviderError(
                f"Remote job creation failed: {e}", operation="open_session"
            ) from e
        except (KeyError, ValueError) as e:
            raise ProviderError(
                f"Malformed job creation response: {e}", operation="open_session"
            ) from e

        logger.info(f"Opened remote job {job_id} for '{envelope.name}'")

        try:
            browser = await self.playwright_manager.connect_remote(
                ws_endpoint, envelope.capabilities.browser_name
            )
            driver = await self.playwright_manager.open_driver(browser)
        except HarnessError as e:
            # The job exists but has no browser; stop it so it is not left open
            logger.error(f"Attaching to remote job {job_id} failed: {e}")
            try:
                await self.close_job(job_id)
            except ProviderError as close_error:
                logger.warning(f"Could not stop job {job_id}: {close_error}")
            raise ProviderError(
                f"Remote browser attach failed: {e}", operation="open_session"
            ) from e

        return RemoteSession(driver=driver, job_id=job_id)

    async def report_outcome(self, job_id: str, passed: bool) -> None:
        try:
            response = await self.client.put(
                f"{self.api_url}/jobs/{job_id}", json={"passed": passed}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Reporting status for job {job_id} failed: {e}")
            raise ProviderError(
                f"Reporting outcome failed: {e}", operation="report_outcome"
            ) from e
        logger.info(f"Reported job {job_id} as {'passed' if passed else 'failed'}")

    async def close_job(self, job_id: str) -> None:
        try:
            response = await self.client.put(f"{self.api_url}/jobs/{job_id}/stop")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Stopping job {job_id} failed: {e}")
            raise ProviderError(
                f"Closing job failed: {e}", operation="close_job"
            ) from e
        logger.info(f"Stopped remote job {job_id}")

    async def aclose(self) -> None:
        await self.client.aclose()
