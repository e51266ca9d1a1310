"""Image list and cover-index policy.

Pure functions producing :class:`SpotPatch` objects for the image
operations, so the cover invariant is decided in one place:

* no images → ``cover_index == 0``
* otherwise ``0 <= cover_index < len(images)``
"""

from __future__ import annotations

from collections.abc import Sequence

from streetart.models.spot import Spot, SpotPatch


def append_images(spot: Spot, images: Sequence[str]) -> SpotPatch | None:
    """Append *images* in order; ``None`` when there is nothing to add."""
    if not images:
        return None
    return SpotPatch(images=(*spot.images, *images))


def set_cover(spot: Spot, index: int) -> SpotPatch | None:
    """Make ``images[index]`` the cover; ``None`` for an invalid index."""
    if not 0 <= index < len(spot.images):
        return None
    return SpotPatch(cover_index=index)


def remove_image(spot: Spot, index: int) -> SpotPatch | None:
    """Delete ``images[index]`` and shift the cover accordingly.

    Removing the cover resets it to 0; removing an earlier image shifts the
    cover down by one; removing a later image leaves it unchanged.
    ``None`` for an invalid index.
    """
    if not 0 <= index < len(spot.images):
        return None

    images = spot.images[:index] + spot.images[index + 1 :]
    cover = spot.cover_index
    if cover == index:
        cover = 0
    elif cover > index:
        cover -= 1
    if cover >= len(images):
        cover = 0
    return SpotPatch(images=images, cover_index=cover)
