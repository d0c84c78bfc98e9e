"""Test unit registry for discovery and lookup by id."""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from harness.browser.facade import ActionFacade

logger = logging.getLogger(__name__)

TestBody = Callable[[ActionFacade], Awaitable[None]]


@dataclass(frozen=True)
class TestUnit:
    """One independently runnable acceptance test."""

    __test__ = False  # not a pytest test class

    test_id: str
    body: TestBody
    display_name: str = ""
    tags: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, "display_name", self.test_id)


class TestRegistry:
    """
    Registry of test units keyed by id.

    GOTCHA: Units must be registered before a plan referencing them runs
    """

    __test__ = False

    def __init__(self):
        self._units: Dict[str, TestUnit] = {}

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, test_id: str) -> bool:
        return test_id in self._units

    def register(self, unit: TestUnit) -> TestUnit:
        """
        Register a test unit.

        Raises:
            ValueError: If the id is already registered
        """
        if unit.test_id in self._units:
            raise ValueError(
                f"Test unit '{unit.test_id}' is already registered. "
                "Use a unique id for each test unit."
            )
        self._units[unit.test_id] = unit
        logger.debug(f"Registered test unit: {unit.test_id}")
        return unit

    def get(self, test_id: str) -> Optional[TestUnit]:
        return self._units.get(test_id)

    def ids(self, tag: Optional[str] = None) -> List[str]:
        """List registered ids in registration order, optionally filtered by tag."""
        if tag is None:
            return list(self._units)
        return [unit.test_id for unit in self._units.values() if tag in unit.tags]

    def clear(self) -> None:
        self._units.clear()

    def acceptance_test(
        self,
        test_id: Optional[str] = None,
        display_name: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Callable[[TestBody], TestBody]:
        """
        Decorator registering an async function as a test unit.

        Example:
            @registry.acceptance_test(tags=["smoke"])
            async def login_succeeds(browser):
                await browser.visit("https://example.com/login")
        """

        def decorator(func: TestBody) -> TestBody:
            unit_id = test_id or func.__name__
            self.register(
                TestUnit(
                    test_id=unit_id,
                    body=func,
                    display_name=display_name or unit_id,
                    tags=list(tags or []),
                )
            )
            return func

        return decorator


# Default registry used by test modules loaded from the command line
default_registry = TestRegistry()
acceptance_test = default_registry.acceptance_test
