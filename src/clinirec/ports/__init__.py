"""Ports layer - interfaces the session and cache layers depend on.

Concrete adapters live in ``clinirec.storage``.
"""

from .storage import StoragePort

__all__ = ["StoragePort"]
