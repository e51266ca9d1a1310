"""Input classification.

Raw pointer input is tagged with the visual element it originated from
*before* dispatch, so a click on a marker can never also be handled as a
click on the empty map.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

MARKER_ELEMENT_PREFIX = "marker:"
CREATE_CONFIRM_ELEMENT = "popup:create"


class InteractionOrigin(StrEnum):
    MAP = "map"
    MARKER = "marker"
    CREATE_CONFIRM = "create_confirm"


class Interaction(BaseModel):
    """A classified pointer interaction."""

    model_config = ConfigDict(frozen=True)

    origin: InteractionOrigin
    lat: float | None = None
    lng: float | None = None
    spot_id: str | None = None

    @model_validator(mode="after")
    def _check_origin_fields(self) -> Interaction:
        if self.origin == InteractionOrigin.MARKER and not self.spot_id:
            raise ValueError("marker interactions need a spot_id")
        if self.origin == InteractionOrigin.MAP and (self.lat is None or self.lng is None):
            raise ValueError("map interactions need a position")
        return self


def marker_element(spot_id: str) -> str:
    """Element tag adapters attach to the marker for *spot_id*."""
    return f"{MARKER_ELEMENT_PREFIX}{spot_id}"


def classify_pointer(lat: float | None, lng: float | None, element: str | None) -> Interaction:
    """Tag a raw pointer event by its originating element.

    ``"marker:<id>"`` → MARKER, ``"popup:create"`` → CREATE_CONFIRM,
    anything else (including ``None``) → MAP.
    """
    if element:
        if element.startswith(MARKER_ELEMENT_PREFIX):
            spot_id = element[len(MARKER_ELEMENT_PREFIX) :]
            if spot_id:
                return Interaction(origin=InteractionOrigin.MARKER, lat=lat, lng=lng, spot_id=spot_id)
        elif element == CREATE_CONFIRM_ELEMENT:
            return Interaction(origin=InteractionOrigin.CREATE_CONFIRM, lat=lat, lng=lng)
    return Interaction(origin=InteractionOrigin.MAP, lat=lat, lng=lng)
