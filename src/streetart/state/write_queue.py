"""Per-spot write queue for optimistic persistence.

Every spot id has at most one ``put`` in flight. Writes enqueued while one
is in flight are coalesced: only the latest value is written next. This
keeps a slow early write from landing after (and clobbering) a newer one.
"""

from __future__ import annotations

import asyncio
import logging

from streetart.models.spot import Spot
from streetart.storage.store import SpotStore

_logger = logging.getLogger(__name__)


class SpotWriteQueue:
    """Fire-and-forget, coalescing ``put`` scheduler keyed by spot id."""

    def __init__(self, store: SpotStore) -> None:
        self._store = store
        self._pending: dict[str, Spot] = {}
        self._workers: dict[str, asyncio.Task[None]] = {}

    @property
    def pending_ids(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def busy_ids(self) -> frozenset[str]:
        return frozenset(self._workers)

    def enqueue(self, spot: Spot) -> None:
        """Schedule *spot* to be written; replaces any not-yet-started write."""
        if spot.id in self._pending:
            _logger.debug("Coalescing pending write for %s", spot.id)
        self._pending[spot.id] = spot
        if spot.id not in self._workers:
            loop = asyncio.get_running_loop()
            self._workers[spot.id] = loop.create_task(self._drain(spot.id), name=f"streetart-put-{spot.id}")

    async def _drain(self, spot_id: str) -> None:
        try:
            while True:
                spot = self._pending.pop(spot_id, None)
                if spot is None:
                    return
                await self._store.put(spot)
        finally:
            self._workers.pop(spot_id, None)

    async def discard(self, spot_id: str) -> None:
        """Drop the pending write for *spot_id* and wait out the in-flight one."""
        self._pending.pop(spot_id, None)
        worker = self._workers.get(spot_id)
        if worker is not None:
            await worker

    async def flush(self) -> None:
        """Wait until every enqueued write has been attempted."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()))
