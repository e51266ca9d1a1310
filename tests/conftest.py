from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from streetart.config import StreetArtConfig
from streetart.exceptions import DescriptionServiceError
from streetart.models.marker import MarkerIcon


@dataclass
class FakeMarker:
    spot_id: str
    lat: float
    lng: float
    icon: MarkerIcon
    z_index_offset: int
    on_select: Callable[[], None]
    removed: bool = False
    calls: list[str] = field(default_factory=list)

    def set_position(self, lat: float, lng: float) -> None:
        self.calls.append("set_position")
        self.lat, self.lng = lat, lng

    def set_icon(self, icon: MarkerIcon) -> None:
        self.calls.append("set_icon")
        self.icon = icon

    def set_z_index_offset(self, offset: int) -> None:
        self.calls.append("set_z_index_offset")
        self.z_index_offset = offset

    def remove(self) -> None:
        self.calls.append("remove")
        self.removed = True

    def click(self) -> None:
        self.on_select()


@dataclass
class FakeMarkerBackend:
    markers: list[FakeMarker] = field(default_factory=list)
    fail_create_for: set[str] = field(default_factory=set)

    def create_marker(
        self,
        spot_id: str,
        lat: float,
        lng: float,
        *,
        icon: MarkerIcon,
        z_index_offset: int,
        on_select: Callable[[], None],
    ) -> FakeMarker:
        if spot_id in self.fail_create_for:
            raise RuntimeError(f"cannot draw {spot_id}")
        marker = FakeMarker(spot_id, lat, lng, icon, z_index_offset, on_select)
        self.markers.append(marker)
        return marker

    def live(self) -> dict[str, FakeMarker]:
        return {m.spot_id: m for m in self.markers if not m.removed}

    def elevated_ids(self) -> set[str]:
        return {spot_id for spot_id, m in self.live().items() if m.z_index_offset > 0}

    @property
    def created_count(self) -> int:
        return len(self.markers)

    @property
    def removed_count(self) -> int:
        return sum(1 for m in self.markers if m.removed)

    @property
    def setter_calls(self) -> int:
        return sum(len([c for c in m.calls if c != "remove"]) for m in self.markers)


@dataclass
class FakeViewport:
    flights: list[tuple[float, float, int, float]] = field(default_factory=list)
    prompts: list[tuple[float, float]] = field(default_factory=list)
    popups_closed: int = 0

    def fly_to(self, lat: float, lng: float, *, zoom: int, duration: float) -> None:
        self.flights.append((lat, lng, zoom, duration))

    def open_create_prompt(self, lat: float, lng: float) -> None:
        self.prompts.append((lat, lng))

    def close_popup(self) -> None:
        self.popups_closed += 1


@dataclass
class FakeDescriptionService:
    text: str = "Яркий мурал"
    fail: bool = False
    gate: asyncio.Event | None = None
    requests: list[str] = field(default_factory=list)

    async def describe(self, image_data_url: str) -> str:
        self.requests.append(image_data_url)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise DescriptionServiceError("HTTP 500 from description service", status_code=500)
        return self.text


@pytest.fixture
def config(tmp_path) -> StreetArtConfig:
    return StreetArtConfig(data_dir=tmp_path, api_key="test-key")


@pytest.fixture
def marker_backend() -> FakeMarkerBackend:
    return FakeMarkerBackend()


@pytest.fixture
def viewport() -> FakeViewport:
    return FakeViewport()
