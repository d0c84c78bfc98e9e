"""Remote browser providers."""

from .provider import RemoteProvider, RemoteSession, GridProvider

__all__ = ["RemoteProvider", "RemoteSession", "GridProvider"]
