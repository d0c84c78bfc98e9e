"""Configuration package for the acceptance-test harness."""

from .harness_config import HarnessConfig

__all__ = ["HarnessConfig"]
