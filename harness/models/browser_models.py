"""Browser session data models for the acceptance-test harness.

This module defines the Pydantic models describing how elements are located
and how a browser session is requested: locators, capability options,
session descriptors and the capability envelope sent to a remote provider.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Any, Optional
from enum import Enum


class LocatorStrategy(str, Enum):
    """Supported element location strategies."""

    CSS = "css"
    XPATH = "xpath"
    ID = "id"
    NAME = "name"
    TEXT = "text"
    TEST_ID = "test_id"
    LINK_TEXT = "link_text"


class ExecutionMode(str, Enum):
    """Where a browser session runs."""

    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class JobVisibility(str, Enum):
    """Visibility of a remote job record."""

    PUBLIC = "public"
    PRIVATE = "private"
    TEAM = "team"
    SHARE = "share"


class BrowserType(str, Enum):
    """Supported browser engines."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"
    CHROME = "chrome"
    EDGE = "edge"


# Branded browsers run on the chromium engine through a release channel
BROWSER_CHANNELS: Dict[BrowserType, str] = {
    BrowserType.CHROME: "chrome",
    BrowserType.EDGE: "msedge",
}


class Locator(BaseModel):
    """Immutable description of how to find one or more elements.

    Equality is structural, so two locators declared separately with the
    same strategy and value compare (and hash) equal.
    """

    model_config = ConfigDict(frozen=True)

    strategy: LocatorStrategy = Field(description="Location strategy")
    value: str = Field(min_length=1, description="Strategy-specific query")
    description: Optional[str] = Field(
        default=None,
        description="Human readable name used in failure messages",
        exclude=True,
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Locator):
            return NotImplemented
        return (self.strategy, self.value) == (other.strategy, other.value)

    def __hash__(self) -> int:
        return hash((self.strategy, self.value))

    def __str__(self) -> str:
        label = f"{self.strategy.value}={self.value}"
        if self.description:
            return f"{self.description} ({label})"
        return label

    def to_selector(self) -> str:
        """Render the locator as a Playwright selector string."""
        if self.strategy == LocatorStrategy.CSS:
            return f"css={self.value}"
        if self.strategy == LocatorStrategy.XPATH:
            return f"xpath={self.value}"
        if self.strategy == LocatorStrategy.ID:
            return f'css=[id="{self.value}"]'
        if self.strategy == LocatorStrategy.NAME:
            return f'css=[name="{self.value}"]'
        if self.strategy == LocatorStrategy.TEST_ID:
            return f'css=[data-testid="{self.value}"]'
        if self.strategy == LocatorStrategy.LINK_TEXT:
            return f'css=a:text-is("{self.value}")'
        return f"text={self.value}"

    @classmethod
    def css(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.CSS, value=value, description=description)

    @classmethod
    def xpath(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.XPATH, value=value, description=description)

    @classmethod
    def id(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.ID, value=value, description=description)

    @classmethod
    def name(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.NAME, value=value, description=description)

    @classmethod
    def text(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.TEXT, value=value, description=description)

    @classmethod
    def test_id(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(strategy=LocatorStrategy.TEST_ID, value=value, description=description)

    @classmethod
    def link_text(cls, value: str, description: Optional[str] = None) -> "Locator":
        return cls(
            strategy=LocatorStrategy.LINK_TEXT, value=value, description=description
        )


class CapabilityOptions(BaseModel):
    """Browser identity and launch options shared by local and remote sessions."""

    model_config = ConfigDict(frozen=True)

    browser_name: BrowserType = Field(
        default=BrowserType.CHROMIUM, description="Browser to launch"
    )
    browser_version: Optional[str] = Field(
        default=None, description="Requested browser version (remote only)"
    )
    platform_name: Optional[str] = Field(
        default=None, description="Requested operating system (remote only)"
    )
    headless: bool = Field(default=True, description="Run without a visible window")
    arguments: List[str] = Field(
        default_factory=list, description="Extra browser command line arguments"
    )
    excluded_switches: List[str] = Field(
        default_factory=lambda: ["disable-popup-blocking"],
        description="Default switches the browser should not receive",
    )
    extensions: Dict[str, Any] = Field(
        default_factory=dict, description="Provider-specific capability extensions"
    )

    def launch_options(self) -> Dict[str, Any]:
        """Build keyword arguments for a local Playwright launch."""
        options: Dict[str, Any] = {"headless": self.headless}
        if self.arguments:
            options["args"] = list(self.arguments)
        if self.excluded_switches and self.browser_name not in (
            BrowserType.FIREFOX,
            BrowserType.WEBKIT,
        ):
            options["ignore_default_args"] = [
                f"--{switch}" for switch in self.excluded_switches
            ]
        channel = BROWSER_CHANNELS.get(self.browser_name)
        if channel:
            options["channel"] = channel
        return options

    @property
    def engine(self) -> BrowserType:
        """Playwright engine that drives this browser."""
        if self.browser_name in BROWSER_CHANNELS:
            return BrowserType.CHROMIUM
        return self.browser_name


class CapabilityEnvelope(BaseModel):
    """Capability options wrapped with remote job metadata."""

    model_config = ConfigDict(frozen=True)

    capabilities: CapabilityOptions
    name: str = Field(description="Job name shown by the provider")
    visibility: JobVisibility = Field(default=JobVisibility.PUBLIC)
    build: Optional[str] = Field(default=None, description="Build identifier")
    tags: List[str] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body expected by the provider job API."""
        caps = self.capabilities
        options: Dict[str, Any] = {
            "name": self.name,
            "public": self.visibility.value,
            "tags": list(self.tags),
        }
        if self.build:
            options["build"] = self.build
        options.update(caps.extensions)
        payload: Dict[str, Any] = {
            "browserName": caps.browser_name.value,
            "options": options,
        }
        if caps.browser_version:
            payload["browserVersion"] = caps.browser_version
        if caps.platform_name:
            payload["platformName"] = caps.platform_name
        if caps.arguments or caps.excluded_switches:
            payload["browserOptions"] = {
                "args": list(caps.arguments),
                "excludeSwitches": list(caps.excluded_switches),
            }
        return payload


class SessionDescriptor(BaseModel):
    """Everything needed to start one session, fixed before any driver call."""

    model_config = ConfigDict(frozen=True)

    mode: ExecutionMode
    capabilities: CapabilityOptions = Field(default_factory=CapabilityOptions)
    display_name: str = Field(min_length=1, description="Test unit display name")
    visibility: JobVisibility = Field(default=JobVisibility.PUBLIC)
    build: Optional[str] = Field(default=None)
    tags: List[str] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def envelope(self) -> CapabilityEnvelope:
        """Wrap the capability options for the remote provider."""
        return CapabilityEnvelope(
            capabilities=self.capabilities,
            name=self.display_name,
            visibility=self.visibility,
            build=self.build,
            tags=self.tags,
        )
