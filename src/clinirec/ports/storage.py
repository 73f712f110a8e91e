"""Persisted client state port.

The session survives process restarts through a small key-value store.
Session code depends on this abstraction only, so tests run against the
in-memory adapter and the CLI against the JSON file adapter.
"""

from abc import ABC, abstractmethod


class StoragePort(ABC):
    """Abstract key-value store for persisted client state."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value for ``key`` or None when absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error."""
