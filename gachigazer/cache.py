"""Byte caches with expiry: in memory, in SQLite, and both stacked."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from datetime import timedelta

logger = logging.getLogger(__name__)

MEMORY_ONLY_PREFIX = "mem:"
PERSISTENT_PREFIX = "db:"
PROMOTION_TTL = timedelta(hours=24)


def _ttl_seconds(ttl: timedelta | float) -> float:
    return ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)


class Cache(ABC):
    """A key to bytes store whose entries expire after a time to live."""

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """The stored data, or None if missing or expired."""

    @abstractmethod
    def set(self, key: str, data: bytes, ttl: timedelta | float) -> None:
        """Store ``data`` for ``ttl`` (a timedelta or seconds)."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove one entry."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""


class MemoryCache(Cache):
    """A thread-safe in-process cache."""

    def __init__(self) -> None:
        self._items: dict[str, tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            data, expires_at = item
            if time.monotonic() > expires_at:
                del self._items[key]
                return None
            return data

    def set(self, key: str, data: bytes, ttl: timedelta | float) -> None:
        with self._lock:
            self._items[key] = (data, time.monotonic() + _ttl_seconds(ttl))

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items = {}


class DBCache(Cache):
    """A cache kept in the ``cache`` table of a SQLite database."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        with self._connection:
            self._connection.execute(
                "CREATE TABLE IF NOT EXISTS cache ("
                "key TEXT PRIMARY KEY, data BLOB, expires_at REAL NOT NULL)"
            )

    def get(self, key: str) -> bytes | None:
        try:
            row = self._connection.execute(
                "SELECT data, expires_at FROM cache WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error:
            return None
        if row is None:
            return None
        data, expires_at = row
        if time.time() > expires_at:
            try:
                self.delete(key)
            except sqlite3.Error:
                logger.exception("Failed to delete expired cache entry")
            return None
        return bytes(data) if data is not None else b""

    def set(self, key: str, data: bytes, ttl: timedelta | float) -> None:
        with self._connection:
            self._connection.execute(
                "INSERT OR REPLACE INTO cache (key, data, expires_at) VALUES (?, ?, ?)",
                (key, data, time.time() + _ttl_seconds(ttl)),
            )

    def delete(self, key: str) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM cache WHERE key = ?", (key,))

    def clear(self) -> None:
        with self._connection:
            self._connection.execute("DELETE FROM cache")


class MultiLevelCache(Cache):
    """A memory cache in front of a persistent one.

    Keys starting with ``mem:`` live in memory only; a ``db:`` prefix is
    dropped and the key handled like any other.
    """

    def __init__(self, memory: Cache, db: Cache) -> None:
        self.memory = memory
        self.db = db

    def get(self, key: str) -> bytes | None:
        if key.startswith(MEMORY_ONLY_PREFIX):
            return self.memory.get(key[len(MEMORY_ONLY_PREFIX):])
        key = key.removeprefix(PERSISTENT_PREFIX)

        data = self.memory.get(key)
        if data is not None:
            return data
        data = self.db.get(key)
        if data is not None:
            try:
                self.memory.set(key, data, PROMOTION_TTL)
            except Exception:
                logger.exception("Failed to promote entry to memory cache")
            return data
        return None

    def set(self, key: str, data: bytes, ttl: timedelta | float) -> None:
        if key.startswith(MEMORY_ONLY_PREFIX):
            self.memory.set(key[len(MEMORY_ONLY_PREFIX):], data, ttl)
            return
        key = key.removeprefix(PERSISTENT_PREFIX)
        self.db.set(key, data, ttl)
        try:
            self.memory.set(key, data, ttl)
        except Exception:
            logger.exception("Failed to write memory cache")

    def delete(self, key: str) -> None:
        try:
            self.memory.delete(key)
        except Exception:
            logger.exception("Failed to delete from memory cache")
        self.db.delete(key)

    def clear(self) -> None:
        try:
            self.memory.clear()
        except Exception:
            logger.exception("Failed to clear memory cache")
        self.db.clear()