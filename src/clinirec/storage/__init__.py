"""Storage adapters for persisted client state."""

from clinirec.storage.local_storage import InMemoryStorage, JsonFileStorage

__all__ = ["InMemoryStorage", "JsonFileStorage"]
