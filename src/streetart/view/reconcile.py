"""Marker reconciliation.

Keeps the live marker set in step with the spot collection. After every
pass the marker-id set equals the spot-id set, each marker shows its
spot's cover image (or the placeholder glyph), and only the selected
spot's marker is elevated.

The reconciler remembers what it last applied to each marker and only
calls setters for what actually changed, so a pass with nothing to do
performs no backend calls at all.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from streetart.models.marker import MarkerIcon, StackingPriority
from streetart.models.spot import Spot
from streetart.view.backend import MarkerBackend, MarkerHandle

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _MarkerState:
    """A live marker and the visual state last applied to it."""

    handle: MarkerHandle
    position: tuple[float, float]
    icon: MarkerIcon
    z_index_offset: int


@dataclass(frozen=True, slots=True)
class ReconcileStats:
    created: int = 0
    updated: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.removed)


class MarkerReconciler:
    """Owns the ``spot id → marker`` table. Only :meth:`reconcile` mutates it."""

    def __init__(self, backend: MarkerBackend, *, on_select: Callable[[str], None]) -> None:
        self._backend = backend
        self._on_select = on_select
        self._markers: dict[str, _MarkerState] = {}
        self._reconciling = False

    def marker_ids(self) -> frozenset[str]:
        return frozenset(self._markers)

    def handle(self, spot_id: str) -> MarkerHandle | None:
        state = self._markers.get(spot_id)
        return state.handle if state is not None else None

    def z_index_offsets(self) -> dict[str, int]:
        return {spot_id: state.z_index_offset for spot_id, state in self._markers.items()}

    def _selection_handler(self, spot_id: str) -> Callable[[], None]:
        def _select() -> None:
            self._on_select(spot_id)

        return _select

    def _create(self, spot: Spot, icon: MarkerIcon, z_index_offset: int) -> bool:
        try:
            handle = self._backend.create_marker(
                spot.id,
                spot.lat,
                spot.lng,
                icon=icon,
                z_index_offset=z_index_offset,
                on_select=self._selection_handler(spot.id),
            )
        except Exception:
            _logger.warning("Creating marker for spot %s failed; retrying next pass", spot.id, exc_info=True)
            return False
        self._markers[spot.id] = _MarkerState(handle, spot.position, icon, z_index_offset)
        return True

    @staticmethod
    def _refresh(
        spot_id: str,
        state: _MarkerState,
        position: tuple[float, float],
        icon: MarkerIcon,
        z_index_offset: int,
    ) -> bool:
        """Apply whatever differs from the last applied state. Returns True if anything did."""
        changed = False
        try:
            if state.position != position:
                state.handle.set_position(*position)
                state.position = position
                changed = True
            if state.icon != icon:
                state.handle.set_icon(icon)
                state.icon = icon
                changed = True
            if state.z_index_offset != z_index_offset:
                state.handle.set_z_index_offset(z_index_offset)
                state.z_index_offset = z_index_offset
                changed = True
        except Exception:
            _logger.warning("Updating marker for spot %s failed; retrying next pass", spot_id, exc_info=True)
        return changed

    def reconcile(self, spots: Iterable[Spot], selected_id: str | None) -> ReconcileStats:
        """Make the marker set match *spots* and *selected_id*."""
        if self._reconciling:
            raise RuntimeError("Marker reconciliation passes must not overlap")
        self._reconciling = True
        try:
            return self._reconcile(spots, selected_id)
        finally:
            self._reconciling = False

    def _reconcile(self, spots: Iterable[Spot], selected_id: str | None) -> ReconcileStats:
        created = updated = removed = 0
        present: set[str] = set()

        for spot in spots:
            present.add(spot.id)
            selected = spot.id == selected_id
            icon = MarkerIcon.for_spot(spot, selected=selected)
            z_index_offset = int(StackingPriority.ELEVATED if selected else StackingPriority.NORMAL)

            state = self._markers.get(spot.id)
            if state is None:
                if self._create(spot, icon, z_index_offset):
                    created += 1
            elif self._refresh(spot.id, state, spot.position, icon, z_index_offset):
                updated += 1

        # The only removal path: markers whose spot is gone.
        for spot_id in [spot_id for spot_id in self._markers if spot_id not in present]:
            self._destroy(spot_id)
            removed += 1

        stats = ReconcileStats(created=created, updated=updated, removed=removed)
        if stats.changed:
            _logger.debug("Reconciled markers: %s", stats)
        return stats

    def _destroy(self, spot_id: str) -> None:
        state = self._markers.pop(spot_id)
        try:
            state.handle.remove()
        except Exception:
            _logger.warning("Removing marker for spot %s failed", spot_id, exc_info=True)

    def clear(self) -> int:
        """Destroy every marker (map view unmount). Returns how many were removed."""
        ids = list(self._markers)
        for spot_id in ids:
            self._destroy(spot_id)
        return len(ids)
