"""One-shot import of the legacy flat spot snapshot into the durable store.

Older builds kept every spot as one JSON array in a local-storage slot.
The import runs at most once per cold start, only against an empty store,
and is best-effort rather than atomic: records whose ``put`` succeeded
stay imported even if a later one fails. The slot is deleted only after
every write has been attempted, so a malformed snapshot is left in place.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from streetart._constants import LEGACY_SPOTS_KEY
from streetart.exceptions import MigrationParseError
from streetart.models.spot import Spot
from streetart.storage.local import LocalStorage
from streetart.storage.store import SpotStore

_logger = logging.getLogger(__name__)

_SPOT_LIST = TypeAdapter(list[Spot])


def parse_legacy_snapshot(raw: str) -> list[Spot]:
    """Parse a legacy snapshot into spots.

    Duplicate ids collapse to a single record: the last value wins and the
    first position is kept.

    Raises :class:`MigrationParseError` on malformed JSON or records that do
    not match the spot shape.
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MigrationParseError(f"Legacy snapshot is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise MigrationParseError(f"Legacy snapshot is a {type(data).__name__}, expected a list")

    try:
        spots = _SPOT_LIST.validate_python(data)
    except ValidationError as exc:
        raise MigrationParseError(f"Legacy snapshot has malformed records: {exc.error_count()} error(s)") from exc

    by_id: dict[str, Spot] = {}
    for spot in spots:
        by_id[spot.id] = spot
    return list(by_id.values())


async def migrate_legacy_snapshot(
    store: SpotStore,
    local: LocalStorage,
    *,
    key: str = LEGACY_SPOTS_KEY,
) -> list[Spot]:
    """Move spots from the legacy slot into *store* and delete the slot.

    The caller is responsible for running this only when the store is
    reachable and holds zero records.

    Returns the imported spots in snapshot order; an empty list when there
    was nothing to import or the snapshot was malformed.
    """
    raw = local.get_item(key)
    if raw is None:
        return []

    try:
        spots = parse_legacy_snapshot(raw)
    except MigrationParseError:
        _logger.warning("Legacy spot migration aborted; snapshot left in place", exc_info=True)
        return []

    if not spots:
        return []

    _logger.info("Migrating %d spot(s) from legacy storage", len(spots))
    failed = 0
    for spot in spots:
        if not await store.put(spot):
            failed += 1

    local.remove_item(key)
    if failed:
        _logger.warning("Legacy migration finished with %d failed write(s) out of %d", failed, len(spots))
    return spots
