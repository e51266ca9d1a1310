"""Authoritative in-memory spot collection.

This is the only component allowed to mutate spots. Mutations are applied
to memory synchronously and persisted through the write queue afterwards
(optimistic); a failed write is logged by the store and never rolled back.
Deletes are the exception: :meth:`SpotRepository.remove` awaits the durable
delete before reporting completion.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable, Mapping, Sequence
from enum import StrEnum
from typing import Any

from streetart._constants import DEFAULT_SPOT_TITLE
from streetart._redact import redact_for_log
from streetart.exceptions import StorageUnavailableError
from streetart.models.spot import Spot, SpotPatch
from streetart.state import policy
from streetart.state.events import ChangeKind, CollectionChange
from streetart.state.write_queue import SpotWriteQueue
from streetart.storage.local import LocalStorage
from streetart.storage.migration import migrate_legacy_snapshot
from streetart.storage.store import SpotStore

_logger = logging.getLogger(__name__)

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_LENGTH = 9

Listener = Callable[[CollectionChange], None]


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _random_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


class RemoveOutcome(StrEnum):
    NOT_FOUND = "not_found"
    REMOVED = "removed"
    # Gone from memory (and the map) but still present in the durable store.
    GHOSTED = "ghosted"


class SpotRepository:
    """Ordered spot collection (creation order) with optimistic persistence."""

    def __init__(
        self,
        store: SpotStore,
        local: LocalStorage,
        *,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _random_id,
    ) -> None:
        self._store = store
        self._local = local
        self._clock = clock
        self._id_factory = id_factory
        self._writes = SpotWriteQueue(store)
        self._spots: dict[str, Spot] = {}
        self._issued_ids: set[str] = set()
        self._listeners: list[Listener] = []
        self._loaded = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def spots(self) -> tuple[Spot, ...]:
        return tuple(self._spots.values())

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def ids(self) -> frozenset[str]:
        return frozenset(self._spots)

    def get(self, spot_id: str) -> Spot | None:
        return self._spots.get(spot_id)

    def __len__(self) -> int:
        return len(self._spots)

    def __contains__(self, spot_id: object) -> bool:
        return spot_id in self._spots

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: ChangeKind, spot_id: str | None = None) -> None:
        change = CollectionChange(kind=kind, spot_id=spot_id)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.exception("Spot collection listener failed on %s", kind)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load(self) -> tuple[Spot, ...]:
        """Establish the initial collection from the store (and legacy slot).

        Runs once; later calls return the current collection. An unreachable
        store yields an empty collection instead of an error.
        """
        if self._loaded:
            return self.spots

        loaded: list[Spot] = []
        try:
            await self._store.open_or_create()
        except StorageUnavailableError:
            _logger.warning("Spot store unavailable; starting with no spots", exc_info=True)
        else:
            loaded = sorted(await self._store.get_all(), key=lambda spot: spot.created_at)
            # Unreadable rows still count as records.
            if await self._store.count() == 0:
                loaded = await migrate_legacy_snapshot(self._store, self._local)

        # Spots created before load completed stay after the loaded ones.
        merged = {spot.id: spot for spot in loaded}
        merged.update(self._spots)
        self._spots = merged
        self._issued_ids.update(merged)
        self._loaded = True
        _logger.debug("Loaded %d spot(s)", len(self._spots))
        self._emit(ChangeKind.LOADED)
        return self.spots

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        while True:
            spot_id = self._id_factory()
            if spot_id not in self._issued_ids:
                self._issued_ids.add(spot_id)
                return spot_id
            _logger.debug("Spot id collision on %s; regenerating", spot_id)

    def create(self, lat: float, lng: float) -> Spot:
        """Create an empty spot at (*lat*, *lng*) and schedule its write.

        Returns the new spot immediately so the caller can select it.
        """
        spot = Spot(
            id=self._new_id(),
            lat=lat,
            lng=lng,
            title=DEFAULT_SPOT_TITLE,
            created_at=self._clock(),
        )
        self._spots[spot.id] = spot
        self._writes.enqueue(spot)
        _logger.debug("Created spot %s at (%f, %f)", spot.id, lat, lng)
        self._emit(ChangeKind.CREATED, spot.id)
        return spot

    def update(self, spot_id: str, patch: SpotPatch | Mapping[str, Any]) -> Spot | None:
        """Merge *patch* into the spot (shallow; sequences replaced wholesale).

        No-op returning ``None`` when *spot_id* is unknown. Raises
        :class:`pydantic.ValidationError` for patches touching ``id``,
        ``createdAt`` or unknown fields.
        """
        if not isinstance(patch, SpotPatch):
            patch = SpotPatch.model_validate(dict(patch))

        existing = self._spots.get(spot_id)
        if existing is None:
            _logger.debug("Ignoring update for unknown spot %s", spot_id)
            return None

        updated = existing.merged(patch)
        if updated == existing:
            return existing

        self._spots[spot_id] = updated
        self._writes.enqueue(updated)
        _logger.debug("Updated spot %s: %s", spot_id, redact_for_log(patch.changes()))
        self._emit(ChangeKind.UPDATED, spot_id)
        return updated

    async def remove(self, spot_id: str) -> RemoveOutcome:
        """Delete a spot from memory, then durably, then notify listeners.

        The durable delete is awaited. If it fails the spot is still gone
        from memory and the outcome is :attr:`RemoveOutcome.GHOSTED`.
        """
        if self._spots.pop(spot_id, None) is None:
            return RemoveOutcome.NOT_FOUND

        # A queued or in-flight write must not resurrect the record.
        await self._writes.discard(spot_id)
        deleted = await self._store.remove(spot_id)
        self._emit(ChangeKind.REMOVED, spot_id)
        if not deleted:
            _logger.warning("Spot %s removed from memory but not from the store", spot_id)
            return RemoveOutcome.GHOSTED
        return RemoveOutcome.REMOVED

    # ------------------------------------------------------------------
    # Image helpers
    # ------------------------------------------------------------------

    def append_images(self, spot_id: str, images: Sequence[str]) -> Spot | None:
        spot = self._spots.get(spot_id)
        if spot is None:
            return None
        patch = policy.append_images(spot, images)
        return spot if patch is None else self.update(spot_id, patch)

    def set_cover(self, spot_id: str, index: int) -> Spot | None:
        spot = self._spots.get(spot_id)
        if spot is None:
            return None
        patch = policy.set_cover(spot, index)
        return spot if patch is None else self.update(spot_id, patch)

    def remove_image(self, spot_id: str, index: int) -> Spot | None:
        spot = self._spots.get(spot_id)
        if spot is None:
            return None
        patch = policy.remove_image(spot, index)
        return spot if patch is None else self.update(spot_id, patch)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Wait for every scheduled write to be attempted."""
        await self._writes.flush()
