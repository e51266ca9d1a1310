"""End-to-end behaviour of the application context against fake map adapters."""

from __future__ import annotations

import asyncio
import io
import json
from typing import TYPE_CHECKING, Any

import pytest
from PIL import Image

from streetart.app import Notice, NoticeKind, StreetArtApp
from streetart.config import StreetArtConfig
from streetart.state.repository import RemoveOutcome
from streetart.storage.local import LocalStorage
from streetart.storage.store import SpotStore
from streetart.view.interaction import classify_pointer, marker_element

from conftest import FakeDescriptionService, FakeMarkerBackend

if TYPE_CHECKING:
    from conftest import FakeViewport

_COVER = "data:image/jpeg;base64,QUJD"


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "purple").save(buffer, format="PNG")
    return buffer.getvalue()


def _app(config: StreetArtConfig, backend: FakeMarkerBackend, viewport: FakeViewport, **kwargs: Any) -> StreetArtApp:
    kwargs.setdefault("description_service", FakeDescriptionService())
    return StreetArtApp(config, marker_backend=backend, viewport=viewport, **kwargs)


@pytest.mark.asyncio
async def test_nothing_loads_before_enter(config, marker_backend, viewport) -> None:
    LocalStorage(config.local_storage_path).set_item(
        "streetart_spots", json.dumps([{"id": "x", "lat": 1, "lng": 2, "createdAt": 100}])
    )
    async with _app(config, marker_backend, viewport) as app:
        assert app.is_entered is False
        assert await app.initialize() is False
        assert marker_backend.live() == {}

        assert await app.enter() is True
        assert app.is_entered
        assert [s.id for s in app.repository.spots] == ["x"]
        assert set(marker_backend.live()) == {"x"}


@pytest.mark.asyncio
async def test_map_click_then_confirm_creates_selected_spot(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()

        assert app.handle_interaction(classify_pointer(55.76, 37.62, None)) is None
        assert viewport.prompts == [(55.76, 37.62)]
        assert len(app.repository) == 0

        spot = app.handle_interaction(classify_pointer(None, None, "popup:create"))
        assert spot is not None
        assert spot.position == (55.76, 37.62)
        assert spot.title == "Новый спот"

        state = app.state
        assert state.selected_id == spot.id
        assert state.sidebar_open and state.editing
        assert state.pending_create is None
        assert app.active_spot == spot
        assert viewport.popups_closed == 1

        # Drawn once, already elevated, with no follow-up restyle.
        assert marker_backend.created_count == 1
        assert marker_backend.setter_calls == 0
        assert marker_backend.elevated_ids() == {spot.id}


@pytest.mark.asyncio
async def test_only_latest_created_spot_is_elevated(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        first = app.create_spot(1.0, 1.0)
        second = app.create_spot(2.0, 2.0)

        assert app.reconciler.marker_ids() == {first.id, second.id}
        assert marker_backend.elevated_ids() == {second.id}


@pytest.mark.asyncio
async def test_marker_click_selects_and_centers(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        first = app.create_spot(1.0, 2.0)
        app.create_spot(3.0, 4.0)

        marker_backend.live()[first.id].click()

        assert app.state.selected_id == first.id
        assert app.state.editing is False
        assert viewport.flights[-1] == (1.0, 2.0, 16, 0.8)
        assert marker_backend.elevated_ids() == {first.id}
        # A click on a marker never prompts for a new spot.
        assert viewport.prompts == []

        # The same path through classified input.
        app.handle_interaction(classify_pointer(1.0, 2.0, marker_element(first.id)))
        assert len(viewport.flights) == 2


@pytest.mark.asyncio
async def test_deselect_lowers_marker(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        spot = app.create_spot(1.0, 2.0)
        app.deselect()

        assert app.active_spot is None
        assert marker_backend.elevated_ids() == set()
        assert marker_backend.live()[spot.id].z_index_offset == 0


@pytest.mark.asyncio
async def test_upload_appends_encoded_images_and_updates_marker(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        spot = app.create_spot(1.0, 2.0)

        updated = await app.upload_images([_png(1200, 600), b"not an image", _png(100, 100)])

        assert updated is not None
        assert len(updated.images) == 2
        assert all(image.startswith("data:image/jpeg;base64,") for image in updated.images)
        assert marker_backend.live()[spot.id].icon.cover_image == updated.images[0]

        app.set_cover(1)
        assert app.active_spot.cover_index == 1
        app.delete_image(0)
        assert app.active_spot.images == (updated.images[1],)
        assert app.active_spot.cover_index == 0


@pytest.mark.asyncio
async def test_upload_without_selection_is_ignored(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        assert await app.upload_images([_png(10, 10)]) is None


@pytest.mark.asyncio
async def test_describe_fills_description(config, marker_backend, viewport) -> None:
    service = FakeDescriptionService(text="Яркий мурал на торце дома")
    async with _app(config, marker_backend, viewport, description_service=service) as app:
        await app.enter()
        spot = app.create_spot(1.0, 2.0)

        # No cover image yet: nothing is requested.
        assert await app.describe_active() is None
        assert service.requests == []

        app.repository.append_images(spot.id, [_COVER])
        updated = await app.describe_active()

        assert updated is not None
        assert updated.description == "Яркий мурал на торце дома"
        assert service.requests == [_COVER]
        assert app.state.analyzing is False


@pytest.mark.asyncio
async def test_describe_failure_raises_notice(config, marker_backend, viewport) -> None:
    received: list[Notice] = []
    service = FakeDescriptionService(fail=True)
    async with _app(config, marker_backend, viewport, description_service=service, on_notice=received.append) as app:
        await app.enter()
        spot = app.create_spot(1.0, 2.0)
        app.update_active({"description": "старое"})
        app.repository.append_images(spot.id, [_COVER])

        assert await app.describe_active() is None

        assert app.active_spot.description == "старое"
        assert app.state.analyzing is False
        assert [n.kind for n in app.notices] == [NoticeKind.DESCRIPTION_FAILED]
        assert app.notices[0].message == "Не удалось сгенерировать описание. Попробуйте еще раз."
        assert received == list(app.notices)

        app.dismiss_notices()
        assert app.notices == ()


@pytest.mark.asyncio
async def test_missing_api_key_raises_notice(tmp_path, marker_backend, viewport) -> None:
    config = StreetArtConfig(data_dir=tmp_path, api_key=None)
    async with _app(config, marker_backend, viewport, description_service=None) as app:
        await app.enter()
        spot = app.create_spot(1.0, 2.0)
        app.repository.append_images(spot.id, [_COVER])

        assert await app.describe_active() is None
        assert [n.kind for n in app.notices] == [NoticeKind.DESCRIPTION_FAILED]


@pytest.mark.asyncio
async def test_late_description_goes_to_requesting_spot(config, marker_backend, viewport) -> None:
    gate = asyncio.Event()
    service = FakeDescriptionService(text="Описание A", gate=gate)
    async with _app(config, marker_backend, viewport, description_service=service) as app:
        await app.enter()
        first = app.create_spot(1.0, 1.0)
        app.repository.append_images(first.id, [_COVER])

        pending = asyncio.create_task(app.describe_active())
        await asyncio.sleep(0)
        assert app.state.analyzing is True

        second = app.create_spot(2.0, 2.0)
        gate.set()
        await pending

        assert app.repository.get(first.id).description == "Описание A"
        assert app.repository.get(second.id).description == ""
        assert app.state.selected_id == second.id


@pytest.mark.asyncio
async def test_late_description_for_deleted_spot_is_dropped(config, marker_backend, viewport) -> None:
    gate = asyncio.Event()
    service = FakeDescriptionService(gate=gate)
    async with _app(config, marker_backend, viewport, description_service=service) as app:
        await app.enter()
        spot = app.create_spot(1.0, 1.0)
        app.repository.append_images(spot.id, [_COVER])

        pending = asyncio.create_task(app.describe_active())
        await asyncio.sleep(0)

        assert app.request_delete(spot.id)
        assert await app.confirm_delete() == RemoveOutcome.REMOVED
        gate.set()

        assert await pending is None
        assert spot.id not in app.repository
        assert app.notices == ()


@pytest.mark.asyncio
async def test_confirm_delete_removes_marker_and_record(config, marker_backend, viewport) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        keep = app.create_spot(1.0, 1.0)
        doomed = app.create_spot(2.0, 2.0)

        assert app.request_delete("unknown") is False
        assert await app.confirm_delete() is None

        assert app.request_delete(doomed.id)
        app.cancel_delete()
        assert await app.confirm_delete() is None
        assert doomed.id in app.repository

        app.request_delete(doomed.id)
        assert await app.confirm_delete() == RemoveOutcome.REMOVED

        assert app.repository.ids() == {keep.id}
        assert set(marker_backend.live()) == {keep.id}
        state = app.state
        assert state.selected_id is None
        assert state.sidebar_open is False
        assert state.pending_delete_id is None

    async with _app(config, FakeMarkerBackend(), viewport) as reopened:
        await reopened.initialize()
        assert reopened.repository.ids() == {keep.id}


@pytest.mark.asyncio
async def test_close_persists_and_reopen_restores(config, marker_backend, viewport) -> None:
    app = _app(config, marker_backend, viewport)
    await app.enter()
    spot = app.create_spot(1.0, 2.0)
    app.update_active({"title": "Мурал", "description": "Во дворе"})
    await app.close()

    assert marker_backend.live() == {}

    backend = FakeMarkerBackend()
    async with _app(config, backend, viewport) as reopened:
        # The session flag survives, so no enter() is needed.
        assert await reopened.initialize() is True
        restored = reopened.repository.get(spot.id)
        assert restored is not None
        assert (restored.title, restored.description) == ("Мурал", "Во дворе")
        assert set(backend.live()) == {spot.id}
        assert backend.elevated_ids() == set()


@pytest.mark.asyncio
async def test_markers_follow_changes_while_delete_is_pending(config, marker_backend, viewport, monkeypatch) -> None:
    async with _app(config, marker_backend, viewport) as app:
        await app.enter()
        doomed = app.create_spot(1.0, 1.0)

        store = app.repository._store
        gate = asyncio.Event()

        async def _slow_remove(spot_id: str) -> bool:
            await gate.wait()
            return await SpotStore.remove(store, spot_id)

        monkeypatch.setattr(store, "remove", _slow_remove)

        app.request_delete(doomed.id)
        pending = asyncio.create_task(app.confirm_delete())
        await asyncio.sleep(0)

        fresh = app.create_spot(2.0, 2.0)
        assert fresh.id in marker_backend.live()
        assert marker_backend.elevated_ids() == {fresh.id}

        gate.set()
        assert await pending == RemoveOutcome.REMOVED
        assert set(marker_backend.live()) == {fresh.id}
        # The fresh spot stays selected; only the deleted one's selection is cleared.
        assert app.state.selected_id == fresh.id


@pytest.mark.asyncio
async def test_overlapping_descriptions_keep_analyzing_until_both_finish(config, marker_backend, viewport) -> None:
    first_gate, second_gate = asyncio.Event(), asyncio.Event()
    service = FakeDescriptionService(text="A", gate=first_gate)
    async with _app(config, marker_backend, viewport, description_service=service) as app:
        await app.enter()
        spot_a = app.create_spot(1.0, 1.0)
        app.repository.append_images(spot_a.id, [_COVER])
        task_a = asyncio.create_task(app.describe_active())
        await asyncio.sleep(0)

        spot_b = app.create_spot(2.0, 2.0)
        app.repository.append_images(spot_b.id, [_COVER])
        service.gate = second_gate
        task_b = asyncio.create_task(app.describe_active())
        await asyncio.sleep(0)
        assert app.state.analyzing_ids == {spot_a.id, spot_b.id}

        first_gate.set()
        await task_a
        assert app.state.analyzing is True
        assert app.state.analyzing_ids == {spot_b.id}

        second_gate.set()
        await task_b
        assert app.state.analyzing is False
