"""streetart - Local-first spot storage and map-marker reconciliation for StreetArt Map."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("streetart-map")
except PackageNotFoundError:
    __version__ = "0+local"
from streetart.app import Notice, NoticeKind, StreetArtApp, ViewState
from streetart.config import MapDefaults, StreetArtConfig
from streetart.describe import DescriptionService, GeminiDescriptionService
from streetart.exceptions import (
    DescriptionServiceError,
    ImageEncodeError,
    MigrationParseError,
    StorageDeleteError,
    StorageError,
    StorageUnavailableError,
    StorageWriteError,
    StreetArtConfigError,
    StreetArtError,
)
from streetart.models import MarkerIcon, Spot, SpotPatch, StackingPriority
from streetart.state.repository import RemoveOutcome, SpotRepository
from streetart.storage import LocalStorage, SpotStore, migrate_legacy_snapshot
from streetart.view import (
    Interaction,
    InteractionOrigin,
    MapViewport,
    MarkerBackend,
    MarkerHandle,
    MarkerReconciler,
    ReconcileStats,
    classify_pointer,
    marker_element,
)

__all__ = [
    "__version__",
    "DescriptionService",
    "DescriptionServiceError",
    "GeminiDescriptionService",
    "ImageEncodeError",
    "Interaction",
    "InteractionOrigin",
    "LocalStorage",
    "MapDefaults",
    "MapViewport",
    "MarkerBackend",
    "MarkerHandle",
    "MarkerIcon",
    "MarkerReconciler",
    "MigrationParseError",
    "Notice",
    "NoticeKind",
    "ReconcileStats",
    "RemoveOutcome",
    "Spot",
    "SpotPatch",
    "SpotRepository",
    "SpotStore",
    "StackingPriority",
    "StorageDeleteError",
    "StorageError",
    "StorageUnavailableError",
    "StorageWriteError",
    "StreetArtApp",
    "StreetArtConfig",
    "StreetArtConfigError",
    "StreetArtError",
    "ViewState",
    "classify_pointer",
    "marker_element",
    "migrate_legacy_snapshot",
]
