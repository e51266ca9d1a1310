"""Spot record and partial-update models."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from streetart.models._base import EpochMillis, StreetArtBaseModel


class Spot(StreetArtBaseModel):
    """A user-created art spot.

    Parameters
    ----------
    id : str
        Opaque client-generated identifier, unique and immutable.
    lat : float
        Latitude in decimal degrees.
    lng : float
        Longitude in decimal degrees, as reported by the map. Not wrapped;
        values past the antimeridian (e.g. 397.6) are kept as-is.
    title : str
        Display title.
    description : str
        Free text, possibly machine generated.
    images : tuple of str
        Encoded image data URLs in display order.
    cover_index : int
        Index into ``images`` of the cover image; ``0`` when there are no images.
    created_at : int
        Creation time, epoch milliseconds.
    """

    id: str
    lat: float
    lng: float
    title: str = ""
    description: str = ""
    images: tuple[str, ...] = ()
    cover_index: int = 0
    created_at: EpochMillis

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("id must be non-empty")
        return value

    @model_validator(mode="after")
    def _normalise_cover_index(self) -> Spot:
        """Keep ``cover_index`` inside ``images``; reset to 0 otherwise."""
        if not 0 <= self.cover_index < max(1, len(self.images)):
            object.__setattr__(self, "cover_index", 0)
        return self

    @property
    def position(self) -> tuple[float, float]:
        return (self.lat, self.lng)

    @property
    def cover_image(self) -> str | None:
        """The cover image, or ``None`` when the spot has no images."""
        if not self.images:
            return None
        if 0 <= self.cover_index < len(self.images):
            return self.images[self.cover_index]
        return self.images[0]

    def merged(self, patch: SpotPatch) -> Spot:
        """Return a copy with the fields supplied by *patch* replaced wholesale."""
        data = self.model_dump()
        data.update(patch.changes())
        return Spot.model_validate(data)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase record stored on disk."""
        return self.model_dump(mode="json", by_alias=True)


class SpotPatch(StreetArtBaseModel):
    """Partial update for a :class:`Spot`.

    Only explicitly supplied fields are applied. ``id`` and ``createdAt``
    are not patchable; supplying them (or any unknown key) is a
    validation error.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    lat: float | None = None
    lng: float | None = None
    title: str | None = None
    description: str | None = None
    images: tuple[str, ...] | None = None
    cover_index: int | None = None

    def changes(self) -> dict[str, Any]:
        """Supplied fields keyed by attribute name."""
        return self.model_dump(exclude_unset=True)
