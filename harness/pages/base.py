"""Composition-based page object."""

from typing import Optional

from harness.browser.facade import ActionFacade
from harness.models.browser_models import Locator


class PageObject:
    """A page that acts through the facade it is given."""

    url: Optional[str] = None
    ready: Optional[Locator] = None

    def __init__(self, browser: ActionFacade):
        self.browser = browser

    async def open(self) -> "PageObject":
        """Visit the page URL and wait for its ready element, if declared."""
        if self.url is None:
            raise ValueError(f"{type(self).__name__} declares no url")
        await self.browser.visit(self.url)
        if self.ready is not None:
            await self.browser.find(self.ready)
        return self

    async def is_loaded(self) -> bool:
        if self.ready is None:
            return True
        return await self.browser.is_displayed(self.ready)
