"""Durable storage for analytics collections."""

from landingstats.storage.store import (
    JsonFileBackend,
    MemoryBackend,
    PersistenceStore,
    RetentionPolicy,
    StorageBackend,
    StorageError,
)

__all__ = [
    "JsonFileBackend",
    "MemoryBackend",
    "PersistenceStore",
    "RetentionPolicy",
    "StorageBackend",
    "StorageError",
]
