"""Structural interfaces for the live map.

The reconciler and application only talk to these protocols. Production
adapters wrap a real map widget; tests pass recording fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from streetart.models.marker import MarkerIcon


class MarkerHandle(Protocol):
    """A live marker on the map."""

    def set_position(self, lat: float, lng: float) -> None: ...

    def set_icon(self, icon: MarkerIcon) -> None: ...

    def set_z_index_offset(self, offset: int) -> None: ...

    def remove(self) -> None: ...


class MarkerBackend(Protocol):
    """Creates markers. ``on_select`` must be invoked when the marker is clicked."""

    def create_marker(
        self,
        spot_id: str,
        lat: float,
        lng: float,
        *,
        icon: MarkerIcon,
        z_index_offset: int,
        on_select: Callable[[], None],
    ) -> MarkerHandle: ...


class MapViewport(Protocol):
    """View-level actions that are not data mutations."""

    def fly_to(self, lat: float, lng: float, *, zoom: int, duration: float) -> None: ...

    def open_create_prompt(self, lat: float, lng: float) -> None: ...

    def close_popup(self) -> None: ...
