#!/usr/bin/env python3
"""Dump every spot in the local StreetArt database.

Image blobs are summarized (count and size) rather than printed.

Usage
-----
::

    export STREETART_DATA_DIR=~/.local/share/streetart
    python scripts/dump_spots.py

Options::

    --data-dir DIR       Data directory (default: $STREETART_DATA_DIR or ~/.local/share/streetart)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --migrate            Import the legacy snapshot first if the store is empty
    --verbose            Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from streetart import LocalStorage, Spot, SpotStore, StreetArtConfig, migrate_legacy_snapshot  # noqa: E402
from streetart._redact import redact_for_log  # noqa: E402
from streetart.exceptions import StorageUnavailableError  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _created(spot: Spot) -> str:
    return datetime.fromtimestamp(spot.created_at / 1000, tz=UTC).isoformat()


def _spot_summary(spot: Spot) -> dict[str, Any]:
    record = redact_for_log(spot.to_record())
    record["createdAtIso"] = _created(spot)
    record["imageBytes"] = sum(len(image) for image in spot.images)
    return record


def _format_spot(spot: Spot) -> str:
    lines = [
        f"  [{spot.id}] {spot.title or '(untitled)'}",
        f"    position:    {spot.lat:.6f}, {spot.lng:.6f}",
        f"    created:     {_created(spot)}",
        f"    images:      {len(spot.images)} (cover #{spot.cover_index})",
    ]
    if spot.description:
        lines.append(f"    description: {spot.description}")
    return "\n".join(lines)


# ── main ─────────────────────────────────────────────────────


async def main() -> int:
    parser = argparse.ArgumentParser(description="Dump spots from the local StreetArt database")
    parser.add_argument("--data-dir", help="Data directory holding the database")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--migrate", action="store_true", help="Import the legacy snapshot if the store is empty")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir).expanduser()
    config = StreetArtConfig.from_env(**overrides)

    store = SpotStore(config.db_path)
    try:
        try:
            await store.open_or_create()
        except StorageUnavailableError as exc:
            print(f"Cannot open {config.db_path}: {exc}", file=sys.stderr)
            return 1

        spots = await store.get_all()
        migrated = 0
        if not spots and args.migrate:
            imported = await migrate_legacy_snapshot(store, LocalStorage(config.local_storage_path))
            migrated = len(imported)
            spots = await store.get_all()
        spots.sort(key=lambda spot: spot.created_at)
    finally:
        await store.close()

    if args.json_mode:
        payload = json.dumps(
            {"database": str(config.db_path), "migrated": migrated, "spots": [_spot_summary(s) for s in spots]},
            indent=2,
            ensure_ascii=False,
        )
    else:
        out = [_section(f"SPOTS ({len(spots)}) in {config.db_path}")]
        if migrated:
            out.append(f"  migrated {migrated} spot(s) from legacy storage")
        out.extend(_format_spot(spot) for spot in spots)
        payload = "\n".join(out)

    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Written to {args.output}", file=sys.stderr)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
