"""Collection change events.

The repository emits one event after every in-memory change. Listeners
(the marker reconciler, UI bindings) re-read the collection; events carry
no record data.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ChangeKind(StrEnum):
    LOADED = "loaded"
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"


class CollectionChange(BaseModel):
    """A change to the authoritative spot collection."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    spot_id: str | None = Field(default=None, description="Affected spot; None for LOADED")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
