"""Durable key-value persistence for analytics collections.

Every collection (visitors, events, sessions, subscribers) is stored as one
JSON array under a string key, the same shape a browser's local storage
would hold. Appends are read-modify-write: the whole collection is decoded,
extended, trimmed to its retention limit and written back. Nothing here is
atomic across processes, so concurrent writers follow last-writer-wins.

Backends:
    JsonFileBackend: one ``<key>.json`` file per key under a data directory
    MemoryBackend: plain dict, for embedding and tests
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Default storage location
DEFAULT_DATA_DIR = Path.home() / ".landingstats" / "data"

DEFAULT_NAMESPACE = "landing"
DEFAULT_SUBSCRIBERS_KEY = "subscribers"
DEFAULT_MAX_EVENTS = 1000

# Roughly what browsers grant a single origin
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """A backend could not read or write a collection.

    Attributes:
        key: The collection key involved, if known
    """

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class StorageBackend(Protocol):
    """Raw string storage keyed by collection name."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryBackend:
    """In-process backend. Contents are lost with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """File backend storing each key as ``<directory>/<key>.json``.

    Writes go through a temp file and a rename so a crash mid-write never
    leaves a half-written collection behind.
    """

    def __init__(self, directory: Path | str = DEFAULT_DATA_DIR, quota_bytes: int = 0):
        """Initialize the backend.

        Args:
            directory: Where collection files live. Created on first write.
            quota_bytes: Total size allowed across all keys (0 disables the check)
        """
        self.directory = Path(directory).expanduser()
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}", key=key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        if self.quota_bytes:
            self._check_quota(key, value)

        temp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(value, encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to write {path}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}", key=key) from e

    def _check_quota(self, key: str, value: str) -> None:
        used = 0
        if self.directory.exists():
            for path in self.directory.glob("*.json"):
                if path.stem != key:
                    used += path.stat().st_size
        needed = used + len(value.encode("utf-8"))
        if needed > self.quota_bytes:
            raise StorageError(
                f"Storage quota exceeded writing {key}: {needed} > {self.quota_bytes} bytes",
                key=key,
            )


@dataclass(frozen=True)
class RetentionPolicy:
    """How many records each collection keeps.

    Attributes:
        max_events: Cap on the event collection (oldest evicted first)
        max_visitors: Cap on visitors, 0 means unbounded
        max_sessions: Cap on sessions, 0 means unbounded
    """

    max_events: int = DEFAULT_MAX_EVENTS
    max_visitors: int = 0
    max_sessions: int = 0


class PersistenceStore:
    """Append-only analytics collections on top of a storage backend.

    Usage:
        store = PersistenceStore(JsonFileBackend("~/.landingstats/data"))
        store.append(store.events_key, event.to_dict())
        events = store.read(store.events_key)
    """

    def __init__(
        self,
        backend: StorageBackend | None = None,
        namespace: str = DEFAULT_NAMESPACE,
        retention: RetentionPolicy | None = None,
        subscribers_key: str = DEFAULT_SUBSCRIBERS_KEY,
    ):
        self.backend = backend if backend is not None else MemoryBackend()
        self.namespace = namespace
        self.retention = retention or RetentionPolicy()
        self.visitors_key = f"{namespace}_visitors"
        self.events_key = f"{namespace}_events"
        self.sessions_key = f"{namespace}_sessions"
        self.subscribers_key = subscribers_key

    @property
    def analytics_keys(self) -> tuple[str, str, str]:
        """Keys owned by this collector (subscribers are owned elsewhere)."""
        return (self.visitors_key, self.events_key, self.sessions_key)

    def _limit_for(self, key: str) -> int:
        if key == self.events_key:
            return self.retention.max_events
        if key == self.visitors_key:
            return self.retention.max_visitors
        if key == self.sessions_key:
            return self.retention.max_sessions
        return 0

    def read(self, key: str) -> list[Any]:
        """Read a collection.

        Missing keys and undecodable contents both read as an empty list.

        Raises:
            StorageError: If the backend itself fails
        """
        try:
            raw = self.backend.get(key)
        except UnicodeDecodeError as e:
            logger.warning("Corrupt collection %s, treating as empty: %s", key, e)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt collection %s, treating as empty: %s", key, e)
            return []
        if not isinstance(data, list):
            logger.warning("Collection %s is not a list, treating as empty", key)
            return []
        return data

    def append(self, key: str, record: dict[str, Any]) -> int:
        """Append one record and apply the collection's retention limit.

        Args:
            key: Collection key
            record: JSON-serializable record

        Returns:
            Length of the collection after the write

        Raises:
            StorageError: If the backend fails or the record can't be encoded
        """
        records = self.read(key)
        records.append(record)

        limit = self._limit_for(key)
        if limit and len(records) > limit:
            evicted = len(records) - limit
            records = records[-limit:]
            logger.debug("Evicted %d oldest records from %s", evicted, key)

        self._write(key, records)
        return len(records)

    def replace(self, key: str, records: list[Any]) -> None:
        """Overwrite a whole collection verbatim (no retention applied)."""
        self._write(key, list(records))

    def clear(self) -> None:
        """Remove the visitor, event and session collections."""
        for key in self.analytics_keys:
            self.backend.remove(key)
        logger.info("Cleared analytics collections in namespace %s", self.namespace)

    def _write(self, key: str, records: list[Any]) -> None:
        try:
            encoded = json.dumps(records, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot encode collection {key}: {e}", key=key) from e
        self.backend.set(key, encoded)
