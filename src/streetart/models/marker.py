"""Marker visual descriptors handed to the map backend."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict

from streetart._constants import (
    MARKER_ANCHOR,
    MARKER_SIZE,
    PLACEHOLDER_GLYPH,
    Z_INDEX_ELEVATED,
    Z_INDEX_NORMAL,
)
from streetart.models.spot import Spot


class StackingPriority(IntEnum):
    """Marker z-index offset. Exactly one marker may be elevated."""

    NORMAL = Z_INDEX_NORMAL
    ELEVATED = Z_INDEX_ELEVATED


class MarkerIcon(BaseModel):
    """What a marker looks like: a cover image or the placeholder glyph."""

    model_config = ConfigDict(frozen=True)

    cover_image: str | None = None
    glyph: str | None = None
    selected: bool = False
    size: tuple[int, int] = MARKER_SIZE
    anchor: tuple[int, int] = MARKER_ANCHOR

    @classmethod
    def for_spot(cls, spot: Spot, *, selected: bool) -> MarkerIcon:
        cover = spot.cover_image
        if cover is None:
            return cls(glyph=PLACEHOLDER_GLYPH, selected=selected)
        return cls(cover_image=cover, selected=selected)
