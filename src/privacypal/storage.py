"""Durable per-device key-value storage with a change feed.

Plays the role of the browser's local storage area: one flat mapping of
string keys to JSON values, shared by the background and popup contexts.
Every successful write notifies subscribers with old/new value pairs for the
changed key.

Database errors are re-raised as ``StorageError``; deciding how to degrade
is left to the caller (see PolicyCache).
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

from privacypal.errors import StorageError

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()

_CREATE_STORAGE_TABLE = """
CREATE TABLE IF NOT EXISTS storage (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at INTEGER NOT NULL
)
"""


@dataclass(frozen=True)
class StorageChange:
    old_value: Any
    new_value: Any


class LocalStorage:
    """aiosqlite-backed storage area implementing StorageProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._listeners: list[Callable[[dict[str, StorageChange]], None]] = []
        # Keeps each old/new pair consistent with the row actually replaced
        self._write_lock = asyncio.Lock()

    async def init_db(self) -> None:
        """Create the storage table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_STORAGE_TABLE)
        await self._db.commit()

    async def get(self, key: str) -> Any | None:
        """Return the decoded value for ``key``, or None when absent."""
        try:
            cursor = await self._db.execute("SELECT value FROM storage WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StorageError(f"Failed to read key {key!r}") from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as exc:
            raise StorageError(f"Stored value for {key!r} is not valid JSON") from exc

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        encoded = json.dumps(value)
        async with self._write_lock:
            old_value = await self._get_quietly(key)
            try:
                await self._db.execute(
                    "INSERT OR REPLACE INTO storage (key, value, updated_at) "
                    "VALUES (?, ?, strftime('%s', 'now'))",
                    (key, encoded),
                )
                await self._db.commit()
            except aiosqlite.Error as exc:
                raise StorageError(f"Failed to write key {key!r}") from exc
        self._notify({key: StorageChange(old_value=old_value, new_value=value)})

    async def remove(self, key: str) -> None:
        async with self._write_lock:
            old_value = await self._get_quietly(key)
            try:
                cursor = await self._db.execute("DELETE FROM storage WHERE key = ?", (key,))
                await self._db.commit()
            except aiosqlite.Error as exc:
                raise StorageError(f"Failed to remove key {key!r}") from exc
        if cursor.rowcount:
            self._notify({key: StorageChange(old_value=old_value, new_value=None)})

    def on_changed(
        self, listener: Callable[[dict[str, StorageChange]], None]
    ) -> Callable[[], None]:
        """Subscribe to the change feed. Returns a callable that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            # Safe to call more than once
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _get_quietly(self, key: str) -> Any | None:
        try:
            return await self.get(key)
        except StorageError:
            log.debug("storage_old_value_unreadable", key=key)
            return None

    def _notify(self, changes: dict[str, StorageChange]) -> None:
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception:
                log.warning("storage_listener_error", keys=sorted(changes), exc_info=True)
