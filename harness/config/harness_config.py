"""Harness configuration with environment variable loading."""

import os
from typing import Optional, List
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from ..browser.errors import ConfigurationError
from ..models.browser_models import (
    BrowserType,
    CapabilityOptions,
    ExecutionMode,
    JobVisibility,
    SessionDescriptor,
)

# Load environment variables from .env file
load_dotenv()

# Legacy platform selector value that means "run on the remote provider"
LEGACY_REMOTE_PLATFORM = "SAUCE"


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


def _read_mode() -> Optional[str]:
    mode = os.getenv("HARNESS_EXECUTION_MODE")
    if mode is not None:
        return mode
    platform = os.getenv("SELENIUM_PLATFORM")
    if platform is None:
        return None
    if platform.strip().upper() == LEGACY_REMOTE_PLATFORM:
        return ExecutionMode.REMOTE.value
    return platform


class HarnessConfig(BaseModel):
    """Configuration for sessions, waits and parallel execution."""

    # Execution mode (validated lazily so a bad value fails the test unit,
    # not the import)
    execution_mode_value: Optional[str] = Field(
        default_factory=_read_mode,
        description="Raw execution mode selector (LOCAL or REMOTE)",
    )

    # Browser capabilities
    browser_name: BrowserType = Field(
        default_factory=lambda: BrowserType(
            os.getenv("HARNESS_BROWSER_NAME", "chromium").lower()
        ),
        description="Browser to run tests in",
    )
    browser_version: Optional[str] = Field(
        default_factory=lambda: os.getenv("HARNESS_BROWSER_VERSION"),
        description="Requested browser version (remote only)",
    )
    platform_name: Optional[str] = Field(
        default_factory=lambda: os.getenv("HARNESS_PLATFORM_NAME"),
        description="Requested operating system (remote only)",
    )
    headless: bool = Field(
        default_factory=lambda: os.getenv("HARNESS_HEADLESS", "true").lower() == "true",
        description="Run local browsers headless",
    )

    # Explicit wait configuration
    wait_timeout: float = Field(
        default_factory=lambda: float(os.getenv("HARNESS_WAIT_TIMEOUT", "10")),
        gt=0,
        description="Element resolution wait budget in seconds",
    )
    poll_interval: float = Field(
        default_factory=lambda: float(os.getenv("HARNESS_POLL_INTERVAL", "0.25")),
        gt=0,
        description="Delay between resolution attempts in seconds",
    )
    action_timeout: float = Field(
        default_factory=lambda: float(os.getenv("HARNESS_ACTION_TIMEOUT", "2")),
        gt=0,
        description="Time an element may take to accept an action, in seconds",
    )
    navigation_timeout: float = Field(
        default_factory=lambda: float(os.getenv("HARNESS_NAVIGATION_TIMEOUT", "30")),
        gt=0,
        description="Page load timeout in seconds",
    )

    # Parallel execution
    concurrency_limit: int = Field(
        default_factory=lambda: int(os.getenv("HARNESS_CONCURRENCY", "2")),
        ge=1,
        description="Maximum concurrently running test units",
    )
    seed: Optional[int] = Field(
        default_factory=lambda: _optional_int("HARNESS_SEED"),
        description="Ordering seed (generated when unset)",
    )

    # Remote provider
    job_visibility: JobVisibility = Field(
        default_factory=lambda: JobVisibility(
            os.getenv("HARNESS_JOB_VISIBILITY", "public").lower()
        ),
        description="Visibility of remote job records",
    )
    build: Optional[str] = Field(
        default_factory=lambda: os.getenv("HARNESS_BUILD"),
        description="Build name attached to remote jobs",
    )
    remote_api_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("REMOTE_API_URL"),
        description="Remote provider job API base URL",
    )
    remote_username: Optional[str] = Field(
        default_factory=lambda: os.getenv("REMOTE_USERNAME"),
        description="Remote provider user name",
    )
    remote_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("REMOTE_ACCESS_KEY"),
        description="Remote provider access key",
    )
    remote_timeout: float = Field(
        default_factory=lambda: float(os.getenv("REMOTE_TIMEOUT", "60")),
        description="Remote provider HTTP timeout in seconds",
    )

    def execution_mode(self) -> ExecutionMode:
        """Validate and return the execution mode.

        Raises:
            ConfigurationError: If the mode is missing or unrecognized
        """
        raw = self.execution_mode_value
        if raw is None or raw.strip() == "":
            raise ConfigurationError(
                "No execution mode configured; set HARNESS_EXECUTION_MODE "
                "to LOCAL or REMOTE",
                operation="configure",
            )
        try:
            return ExecutionMode(raw.strip().upper())
        except ValueError:
            raise ConfigurationError(
                f"Unrecognized execution mode '{raw}'; expected LOCAL or REMOTE",
                operation="configure",
            ) from None

    def capability_options(self) -> CapabilityOptions:
        """Build the capability options bundle for a session."""
        return CapabilityOptions(
            browser_name=self.browser_name,
            browser_version=self.browser_version,
            platform_name=self.platform_name,
            headless=self.headless,
        )

    def session_descriptor(
        self, display_name: str, tags: Optional[List[str]] = None
    ) -> SessionDescriptor:
        """Create the descriptor for one test unit.

        Raises:
            ConfigurationError: If the execution mode is missing or unrecognized
        """
        return SessionDescriptor(
            mode=self.execution_mode(),
            capabilities=self.capability_options(),
            display_name=display_name,
            visibility=self.job_visibility,
            build=self.build,
            tags=tags or [],
        )
