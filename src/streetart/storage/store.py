"""Durable on-device spot store.

Spot records live in a single SQLite table keyed by ``id``; each row holds
the camelCase JSON record. All blocking work runs on a dedicated
single-worker executor, so operations execute in submission order and the
event loop never blocks.

Failures below this layer never reach callers of :meth:`SpotStore.get_all`,
:meth:`SpotStore.put` or :meth:`SpotStore.remove`: they are logged and
reported through the return value instead.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from streetart._constants import DB_VERSION, STORE_NAME
from streetart.exceptions import (
    StorageDeleteError,
    StorageError,
    StorageUnavailableError,
    StorageWriteError,
)
from streetart.models.spot import Spot

_logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_PATH = ":memory:"

# Additive schema steps keyed by the version they upgrade to. Existing
# rows are never dropped or rekeyed.
_SCHEMA_STEPS: dict[int, tuple[str, ...]] = {
    1: (f"CREATE TABLE IF NOT EXISTS {STORE_NAME} (id TEXT PRIMARY KEY NOT NULL, record TEXT NOT NULL)",),
}


def _encode_record(spot: Spot) -> str:
    return json.dumps(spot.to_record(), ensure_ascii=False, separators=(",", ":"))


class SpotStore:
    """Asynchronous key/value repository for :class:`Spot` records."""

    def __init__(self, path: Path | str, *, executor: ThreadPoolExecutor | None = None) -> None:
        self._path = path if path == MEMORY_PATH else Path(path)
        self._conn: sqlite3.Connection | None = None
        self._closed = False
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="streetart-store")

    @property
    def path(self) -> Path | str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        if self._closed:
            raise StorageUnavailableError("Spot store is closed")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @staticmethod
    def _upgrade(conn: sqlite3.Connection) -> None:
        (current,) = conn.execute("PRAGMA user_version").fetchone()
        if current >= DB_VERSION:
            # Same or newer schema: open as-is.
            return
        with conn:
            for version in range(current + 1, DB_VERSION + 1):
                for statement in _SCHEMA_STEPS.get(version, ()):
                    conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {DB_VERSION}")
        _logger.debug("Spot store schema upgraded from v%d to v%d", current, DB_VERSION)

    def _open_sync(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        if self._closed:
            raise StorageUnavailableError("Spot store is closed")

        try:
            if isinstance(self._path, Path):
                self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._path), check_same_thread=False)
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailableError(f"Cannot open spot store {self._path}: {exc}") from exc

        try:
            self._upgrade(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise StorageUnavailableError(f"Cannot initialize spot store {self._path}: {exc}") from exc

        self._conn = conn
        return conn

    # ------------------------------------------------------------------
    # Blocking operations (executor thread only)
    # ------------------------------------------------------------------

    def _get_all_sync(self) -> list[tuple[str, str]]:
        conn = self._open_sync()
        try:
            rows = conn.execute(f"SELECT id, record FROM {STORE_NAME}").fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read spot store: {exc}") from exc
        return [(str(spot_id), str(record)) for spot_id, record in rows]

    def _count_sync(self) -> int:
        conn = self._open_sync()
        try:
            (count,) = conn.execute(f"SELECT COUNT(*) FROM {STORE_NAME}").fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot count spot store: {exc}") from exc
        return int(count)

    def _put_sync(self, spot_id: str, record: str) -> None:
        try:
            conn = self._open_sync()
        except StorageUnavailableError as exc:
            raise StorageWriteError(str(exc), spot_id=spot_id) from exc
        try:
            with conn:
                conn.execute(
                    f"INSERT INTO {STORE_NAME} (id, record) VALUES (?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET record = excluded.record",
                    (spot_id, record),
                )
        except sqlite3.Error as exc:
            raise StorageWriteError(f"Cannot write spot {spot_id}: {exc}", spot_id=spot_id) from exc

    def _remove_sync(self, spot_id: str) -> None:
        try:
            conn = self._open_sync()
        except StorageUnavailableError as exc:
            raise StorageDeleteError(str(exc), spot_id=spot_id) from exc
        try:
            with conn:
                conn.execute(f"DELETE FROM {STORE_NAME} WHERE id = ?", (spot_id,))
        except sqlite3.Error as exc:
            raise StorageDeleteError(f"Cannot delete spot {spot_id}: {exc}", spot_id=spot_id) from exc

    def _close_sync(self) -> None:
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def open_or_create(self) -> None:
        """Open the store, creating the file and table when absent.

        Idempotent. Raises :class:`StorageUnavailableError` when the
        platform denies access.
        """
        await self._run(self._open_sync)

    async def get_all(self) -> list[Spot]:
        """Every stored spot, in no particular order. Never raises."""
        try:
            rows = await self._run(self._get_all_sync)
        except StorageError:
            _logger.warning("Spot store unavailable; starting with no spots", exc_info=True)
            return []

        spots: list[Spot] = []
        for spot_id, record in rows:
            try:
                spots.append(Spot.model_validate(json.loads(record)))
            except (json.JSONDecodeError, ValidationError):
                _logger.warning("Skipping unreadable spot record %s", spot_id, exc_info=True)
        return spots

    async def count(self) -> int | None:
        """Number of stored records; ``None`` when the store cannot be read."""
        try:
            return await self._run(self._count_sync)
        except StorageError:
            _logger.warning("Spot store unavailable; cannot count records", exc_info=True)
            return None

    async def put(self, spot: Spot) -> bool:
        """Insert or fully replace the record for ``spot.id`` (last write wins).

        Returns ``False`` (and logs) when the write failed.
        """
        record = _encode_record(spot)
        try:
            await self._run(self._put_sync, spot.id, record)
        except StorageError as exc:
            _logger.warning("Spot write failed for %s: %s", spot.id, exc)
            return False
        _logger.debug("Stored spot %s (%d bytes)", spot.id, len(record))
        return True

    async def remove(self, spot_id: str) -> bool:
        """Delete the record if present. Returns ``False`` (and logs) on failure."""
        try:
            await self._run(self._remove_sync, spot_id)
        except StorageError as exc:
            _logger.warning("Spot delete failed for %s: %s", spot_id, exc)
            return False
        _logger.debug("Deleted spot %s", spot_id)
        return True

    async def close(self) -> None:
        if self._closed:
            return
        try:
            await self._run(self._close_sync)
        finally:
            if self._owns_executor:
                self._executor.shutdown(wait=False)
