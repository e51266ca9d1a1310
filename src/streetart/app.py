"""Application context for the StreetArt map core."""

from __future__ import annotations

import collections
import contextlib
import dataclasses
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from enum import StrEnum
from typing import Any

import aiohttp
from pydantic import BaseModel, ConfigDict

from streetart._constants import DELETE_FAILED_NOTICE, DESCRIPTION_FAILED_NOTICE
from streetart.config import StreetArtConfig
from streetart.describe import DescriptionService, GeminiDescriptionService
from streetart.exceptions import DescriptionServiceError, StreetArtConfigError
from streetart.images import ImageSource, encode_images
from streetart.models.spot import Spot, SpotPatch
from streetart.session import SessionFlag
from streetart.state.events import CollectionChange
from streetart.state.repository import RemoveOutcome, SpotRepository
from streetart.storage.local import LocalStorage
from streetart.storage.store import SpotStore
from streetart.view.backend import MapViewport, MarkerBackend
from streetart.view.interaction import Interaction, InteractionOrigin
from streetart.view.reconcile import MarkerReconciler

_logger = logging.getLogger(__name__)


class NoticeKind(StrEnum):
    DESCRIPTION_FAILED = "description_failed"
    DELETE_FAILED = "delete_failed"


class Notice(BaseModel):
    """A user-facing message about a failed action."""

    model_config = ConfigDict(frozen=True)

    kind: NoticeKind
    message: str
    spot_id: str | None = None


@dataclasses.dataclass
class ViewState:
    """UI state owned by the application, separate from spot data."""

    selected_id: str | None = None
    sidebar_open: bool = False
    editing: bool = False
    pending_delete_id: str | None = None
    pending_create: tuple[float, float] | None = None
    # Spots with a description request in flight.
    analyzing_ids: frozenset[str] = frozenset()

    @property
    def analyzing(self) -> bool:
        return bool(self.analyzing_ids)


class StreetArtApp:
    """Explicit root object owning storage, the spot repository and the markers.

    Usage::

        async with StreetArtApp(config, marker_backend=backend, viewport=viewport) as app:
            if await app.initialize():
                app.handle_interaction(classify_pointer(lat, lng, element))
    """

    def __init__(
        self,
        config: StreetArtConfig,
        *,
        marker_backend: MarkerBackend,
        viewport: MapViewport,
        description_service: DescriptionService | None = None,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], int] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        self._config = config
        self._local = LocalStorage(config.local_storage_path)
        self._store = SpotStore(config.db_path)
        self._session_flag = SessionFlag(self._local)
        repo_kwargs: dict[str, Any] = {}
        if clock is not None:
            repo_kwargs["clock"] = clock
        self._repository = SpotRepository(self._store, self._local, **repo_kwargs)
        self._reconciler = MarkerReconciler(marker_backend, on_select=self._on_marker_select)
        self._viewport = viewport
        self._description_service = description_service
        self._external_http = http_session is not None
        self._http_session = http_session
        self._on_notice = on_notice
        self._state = ViewState()
        self._analyzing: collections.Counter[str] = collections.Counter()
        self._notices: list[Notice] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._initialized = False
        self._closed = False
        self._defer_depth = 0
        self._reconcile_pending = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StreetArtApp:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Flush pending writes, destroy every marker and close storage."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._repository.flush()
        finally:
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            self._reconciler.clear()
            await self._store.close()
            if not self._external_http and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> StreetArtConfig:
        return self._config

    @property
    def repository(self) -> SpotRepository:
        return self._repository

    @property
    def reconciler(self) -> MarkerReconciler:
        return self._reconciler

    @property
    def state(self) -> ViewState:
        return dataclasses.replace(self._state, analyzing_ids=frozenset(self._analyzing))

    @property
    def notices(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    @property
    def active_spot(self) -> Spot | None:
        if self._state.selected_id is None:
            return None
        return self._repository.get(self._state.selected_id)

    @property
    def is_entered(self) -> bool:
        return self._session_flag.is_entered

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def enter(self) -> bool:
        """Record the session flag and initialize."""
        self._session_flag.enter()
        return await self.initialize()

    async def initialize(self) -> bool:
        """Load spots and draw markers. Returns ``False`` until the user has entered."""
        if not self._session_flag.is_entered:
            return False
        if self._initialized:
            return True
        self._unsubscribe = self._repository.subscribe(self._on_collection_change)
        await self._repository.load()
        self._initialized = True
        return True

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _on_collection_change(self, change: CollectionChange) -> None:
        self._reconcile()

    def _reconcile(self) -> None:
        if self._defer_depth:
            self._reconcile_pending = True
            return
        self._reconcile_pending = False
        self._reconciler.reconcile(self._repository.spots, self._state.selected_id)

    @contextlib.contextmanager
    def _deferred_reconcile(self) -> Iterator[None]:
        """Collapse every reconcile requested inside the block into one pass."""
        self._defer_depth += 1
        try:
            yield
        finally:
            self._defer_depth -= 1
            if not self._defer_depth and self._reconcile_pending:
                self._reconcile()

    # ------------------------------------------------------------------
    # Interaction and selection
    # ------------------------------------------------------------------

    def handle_interaction(self, interaction: Interaction) -> Spot | None:
        """Dispatch a classified interaction.

        MAP opens the create prompt, CREATE_CONFIRM creates a spot at the
        prompted position, MARKER selects (and centers on) its spot.
        """
        if interaction.origin == InteractionOrigin.MARKER:
            assert interaction.spot_id is not None  # noqa: S101
            return self.select(interaction.spot_id)

        if interaction.origin == InteractionOrigin.CREATE_CONFIRM:
            position = self._state.pending_create
            if position is None and interaction.lat is not None and interaction.lng is not None:
                position = (interaction.lat, interaction.lng)
            if position is None:
                _logger.debug("Create confirmed without a prompted position; ignoring")
                return None
            return self.create_spot(*position)

        assert interaction.lat is not None and interaction.lng is not None  # noqa: S101
        self._state.pending_create = (interaction.lat, interaction.lng)
        self._viewport.open_create_prompt(interaction.lat, interaction.lng)
        return None

    def create_spot(self, lat: float, lng: float) -> Spot:
        """Create a spot, select it and open it for editing."""
        with self._deferred_reconcile():
            spot = self._repository.create(lat, lng)
            self._state.selected_id = spot.id
            self._state.sidebar_open = True
            self._state.editing = True
            self._state.pending_create = None
            self._reconcile()
        self._viewport.close_popup()
        return spot

    def select(self, spot_id: str) -> Spot | None:
        """Select a spot, open its details and center the map on it."""
        spot = self._repository.get(spot_id)
        if spot is None:
            return None
        self._state.selected_id = spot_id
        self._state.sidebar_open = True
        self._state.editing = False
        self._reconcile()
        self._viewport.fly_to(
            spot.lat,
            spot.lng,
            zoom=self._config.map.focus_zoom,
            duration=self._config.map.fly_duration,
        )
        return spot

    def _on_marker_select(self, spot_id: str) -> None:
        self.select(spot_id)

    def deselect(self) -> None:
        self._state.selected_id = None
        self._state.sidebar_open = False
        self._state.editing = False
        self._reconcile()

    def set_editing(self, editing: bool) -> None:
        self._state.editing = editing and self._state.selected_id is not None

    def close_sidebar(self) -> None:
        self._state.sidebar_open = False

    # ------------------------------------------------------------------
    # Edits on the active spot
    # ------------------------------------------------------------------

    def update_active(self, patch: SpotPatch | Mapping[str, Any]) -> Spot | None:
        if self._state.selected_id is None:
            return None
        return self._repository.update(self._state.selected_id, patch)

    def set_cover(self, index: int) -> Spot | None:
        if self._state.selected_id is None:
            return None
        return self._repository.set_cover(self._state.selected_id, index)

    def delete_image(self, index: int) -> Spot | None:
        if self._state.selected_id is None:
            return None
        return self._repository.remove_image(self._state.selected_id, index)

    async def upload_images(self, sources: Iterable[ImageSource]) -> Spot | None:
        """Encode *sources* and append the successes to the spot active at call time."""
        target_id = self._state.selected_id
        if target_id is None:
            return None
        encoded = await encode_images(
            sources,
            max_width=self._config.image_max_width,
            quality=self._config.image_quality,
        )
        # Appends to the images current *now*, not to a copy from before encoding.
        return self._repository.append_images(target_id, encoded)

    def _ensure_description_service(self) -> DescriptionService:
        if self._description_service is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._description_service = GeminiDescriptionService(self._config, self._http_session)
        return self._description_service

    async def describe_active(self) -> Spot | None:
        """Generate a description for the active spot from its cover image.

        The request is tagged with the spot that was active when it was
        issued; a late result is applied to that spot, or dropped if the
        spot has been deleted meanwhile.
        """
        target_id = self._state.selected_id
        spot = self._repository.get(target_id) if target_id is not None else None
        if spot is None or spot.cover_image is None:
            return None

        service = self._ensure_description_service()
        self._analyzing[spot.id] += 1
        try:
            text = await service.describe(spot.cover_image)
        except (DescriptionServiceError, StreetArtConfigError) as exc:
            _logger.warning("Description for spot %s failed: %s", spot.id, exc)
            self._notify(Notice(kind=NoticeKind.DESCRIPTION_FAILED, message=DESCRIPTION_FAILED_NOTICE, spot_id=spot.id))
            return None
        finally:
            self._analyzing[spot.id] -= 1
            if self._analyzing[spot.id] <= 0:
                del self._analyzing[spot.id]

        if spot.id not in self._repository:
            _logger.info("Dropping description for deleted spot %s", spot.id)
            return None
        return self._repository.update(spot.id, SpotPatch(description=text))

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def request_delete(self, spot_id: str) -> bool:
        """Ask for confirmation before deleting *spot_id*."""
        if spot_id not in self._repository:
            return False
        self._state.pending_delete_id = spot_id
        return True

    def cancel_delete(self) -> None:
        self._state.pending_delete_id = None

    async def confirm_delete(self) -> RemoveOutcome | None:
        """Delete the spot awaiting confirmation; ``None`` if nothing is pending."""
        spot_id = self._state.pending_delete_id
        if spot_id is None:
            return None
        self._state.pending_delete_id = None

        # Reconciles from other tasks must keep running while the delete is pending.
        outcome = await self._repository.remove(spot_id)
        if self._state.selected_id == spot_id:
            self._state.selected_id = None
            self._state.sidebar_open = False
            self._state.editing = False
            # The marker is already gone; this pass makes no backend calls.
            self._reconcile()

        if outcome == RemoveOutcome.GHOSTED:
            self._notify(Notice(kind=NoticeKind.DELETE_FAILED, message=DELETE_FAILED_NOTICE, spot_id=spot_id))
        return outcome

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def _notify(self, notice: Notice) -> None:
        self._notices.append(notice)
        if self._on_notice is None:
            return
        try:
            self._on_notice(notice)
        except Exception:
            _logger.exception("Notice callback failed")

    def dismiss_notices(self) -> None:
        self._notices.clear()
