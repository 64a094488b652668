"""
Key-value backends for the token store.

``DatastoreBackend`` lives in :mod:`tokenvault.storage.datastore` and is only
imported when requested.
"""
from .base import KeyValueBackend
from .memory import MemoryBackend

__all__ = ["KeyValueBackend", "MemoryBackend"]
