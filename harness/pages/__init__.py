"""Page object support.

Page objects hold an ActionFacade and call it. They do not subclass the
facade and never reach the driver directly.

Example:
    class LoginPage(PageObject):
        url = "https://example.com/login"
        ready = Locator.id("login-form")
        username = Locator.id("username")

        async def login(self, name: str) -> None:
            await self.browser.type(self.username, name)
"""

from harness.pages.base import PageObject

__all__ = ["PageObject"]
