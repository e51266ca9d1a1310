"""Custom exception hierarchy for streetart."""

from __future__ import annotations


class StreetArtError(Exception):
    """Base exception for all streetart errors."""


class StreetArtConfigError(StreetArtError):
    """Invalid or missing configuration."""


class StorageError(StreetArtError):
    """Durable spot storage failure."""

    def __init__(self, message: str, *, spot_id: str | None = None) -> None:
        self.spot_id = spot_id
        super().__init__(message)


class StorageUnavailableError(StorageError):
    """The on-device store cannot be opened (permissions, disk, corrupt file).

    The application keeps running with an empty in-memory collection.
    """


class StorageWriteError(StorageError):
    """A single ``put`` failed. Logged, never retried or surfaced."""


class StorageDeleteError(StorageError):
    """A single ``remove`` failed.

    The in-memory removal still completes, so the record may remain
    durably present after its marker is gone.
    """


class MigrationParseError(StreetArtError):
    """The legacy flat snapshot is not a well-formed list of spot records."""


class ImageEncodeError(StreetArtError):
    """A raw image could not be decoded or re-encoded."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        self.index = index
        super().__init__(message)


class DescriptionServiceError(StreetArtError):
    """The generative description service failed or returned no text."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
