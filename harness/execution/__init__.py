"""Test unit registry and the execution coordinator."""

from .registry import TestUnit, TestRegistry, acceptance_test, default_registry
from .coordinator import ExecutionCoordinator

__all__ = [
    "TestUnit",
    "TestRegistry",
    "acceptance_test",
    "default_registry",
    "ExecutionCoordinator",
]
