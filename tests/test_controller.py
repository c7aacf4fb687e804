from __future__ import annotations

import asyncio
from typing import Any

import pytest

from reflex_data_explorer.controller import SKELETON_ROWS, DataGridController, LoadState
from reflex_data_explorer.errors import RemoteError
from reflex_data_explorer.models import Column, FetchParams, PageResult
from reflex_data_explorer.record_store import RecordStore
from reflex_data_explorer.resizer import PointerSurface


class GatedSource:
    """Data source whose fetches resolve only when the test releases them."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.gates: list[asyncio.Event] = []

    async def fetch_page(self, params: FetchParams) -> PageResult:
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return self.store.query(params)

    async def write_cell(self, row: dict[str, Any], key: str, value: Any) -> None:
        await self.store.write_cell(row, key, value)


class FailingSource:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def fetch_page(self, params: FetchParams) -> PageResult:
        raise self.exc

    async def write_cell(self, row: dict[str, Any], key: str, value: Any) -> None:
        raise self.exc


@pytest.fixture
def controller(store: RecordStore, columns: list[Column]) -> DataGridController:
    return DataGridController(store, columns)


# -- loading --


@pytest.mark.asyncio
async def test_initial_load(controller: DataGridController) -> None:
    assert controller.load_state is LoadState.IDLE

    assert await controller.refresh()

    assert controller.load_state is LoadState.LOADED
    assert len(controller.rows) == 20
    assert controller.total == 250
    assert controller.total_pages == 13
    assert controller.body_state == "rows"
    assert controller.last_fetch_ms is not None


@pytest.mark.asyncio
async def test_skeleton_only_while_first_page_is_loading(controller: DataGridController) -> None:
    controller.begin_fetch()
    assert controller.load_state is LoadState.LOADING
    assert controller.body_state == "skeleton"
    assert SKELETON_ROWS == 5

    await controller.refresh()
    controller.next_page()
    controller.begin_fetch()
    # Previous rows stay visible while the next page loads.
    assert controller.body_state == "rows"


@pytest.mark.asyncio
async def test_filter_without_matches_is_empty(controller: DataGridController) -> None:
    controller.set_filter_text("nobody-here")
    await controller.refresh()

    assert controller.body_state == "empty"
    assert controller.total == 0
    assert controller.total_pages == 1


@pytest.mark.asyncio
async def test_remote_error_enters_error_state(columns: list[Column]) -> None:
    controller = DataGridController(FailingSource(RemoteError("backend down")), columns)

    assert await controller.refresh()

    assert controller.load_state is LoadState.ERROR
    assert controller.error == "backend down"
    assert controller.body_state == "error"


@pytest.mark.asyncio
async def test_unexpected_error_gets_generic_message(columns: list[Column]) -> None:
    controller = DataGridController(FailingSource(ZeroDivisionError()), columns)
    await controller.refresh()
    assert controller.error == "Failed to load data"


@pytest.mark.asyncio
async def test_next_fetch_clears_error(store: RecordStore, columns: list[Column]) -> None:
    controller = DataGridController(FailingSource(RemoteError("nope")), columns)
    await controller.refresh()

    controller.source = store
    await controller.refresh()

    assert controller.load_state is LoadState.LOADED
    assert controller.error is None


@pytest.mark.asyncio
async def test_stale_response_is_discarded(store: RecordStore, columns: list[Column]) -> None:
    source = GatedSource(store)
    controller = DataGridController(source, columns)

    controller.set_filter_text("invited")
    first = asyncio.create_task(controller.run_fetch(controller.begin_fetch()))
    controller.set_filter_text("admin")
    second = asyncio.create_task(controller.run_fetch(controller.begin_fetch()))
    while len(source.gates) < 2:
        await asyncio.sleep(0)

    # The newer request resolves first, then the older one.
    source.gates[1].set()
    assert await second
    source.gates[0].set()
    assert not await first

    assert controller.total == 83
    assert all(row["role"] == "admin" for row in controller.rows)
    assert controller.load_state is LoadState.LOADED


@pytest.mark.asyncio
async def test_stale_failure_is_discarded(store: RecordStore, columns: list[Column]) -> None:
    controller = DataGridController(FailingSource(RemoteError("old")), columns)
    stale = controller.begin_fetch()
    controller.source = store
    await controller.refresh()

    assert not await controller.run_fetch(stale)
    assert controller.load_state is LoadState.LOADED
    assert controller.error is None


# -- view changes --


@pytest.mark.asyncio
async def test_sort_cycle_refetches_in_order(controller: DataGridController) -> None:
    await controller.refresh()

    assert controller.toggle_sort("id")
    await controller.refresh()
    assert controller.rows[0]["id"] == 1

    assert controller.toggle_sort("id")
    await controller.refresh()
    assert controller.rows[0]["id"] == 250

    assert controller.toggle_sort("id")
    assert controller.view.sort_key is None


def test_toggle_sort_on_unknown_column(controller: DataGridController) -> None:
    with pytest.raises(KeyError):
        controller.toggle_sort("nope")


@pytest.mark.asyncio
async def test_paging_is_clamped_to_known_total(controller: DataGridController) -> None:
    await controller.refresh()

    assert not controller.previous_page()
    assert controller.last_page()
    assert controller.view.page == 13
    assert not controller.next_page()

    await controller.refresh()
    assert [r["id"] for r in controller.rows] == list(range(241, 251))

    assert controller.first_page()
    assert controller.view.page == 1


@pytest.mark.asyncio
async def test_page_size_change(controller: DataGridController) -> None:
    await controller.refresh()
    controller.go_to_page(3)

    assert controller.set_page_size(50)
    assert controller.view.page == 1
    await controller.refresh()
    assert len(controller.rows) == 50


def test_unchanged_view_reports_no_change(controller: DataGridController) -> None:
    assert not controller.set_filter_text("")
    assert not controller.set_page_size(20)


# -- editing --


@pytest.mark.asyncio
async def test_only_editable_columns_open_an_editor(controller: DataGridController) -> None:
    await controller.refresh()

    assert not controller.start_edit(0, "id")
    assert not controller.start_edit(0, "created_at")
    assert not controller.start_edit(0, "missing")
    assert not controller.start_edit(99, "name")
    assert controller.edit is None

    assert controller.start_edit(0, "role")
    assert controller.edit is not None
    assert controller.edit.draft_value == "editor"
    assert controller.edit.row_id == 1


@pytest.mark.asyncio
async def test_successful_commit_patches_row_and_closes(controller: DataGridController, store: RecordStore) -> None:
    await controller.refresh()
    controller.start_edit(0, "name")
    controller.set_draft("Grace Hopper")

    assert await controller.commit_edit()

    assert controller.edit is None
    assert controller.rows[0]["name"] == "Grace Hopper"
    assert store.get_record(1)["name"] == "Grace Hopper"


@pytest.mark.asyncio
async def test_failed_commit_keeps_editor_open(controller: DataGridController, store: RecordStore) -> None:
    await controller.refresh()
    controller.start_edit(0, "role")

    assert not await controller.commit_edit("superadmin")

    assert controller.edit is not None
    assert controller.edit.draft_value == "superadmin"
    assert controller.edit.error is not None
    assert "superadmin" in controller.edit.error
    assert controller.rows[0]["role"] == "editor"
    assert store.get_record(1)["role"] == "editor"

    # Correcting the value succeeds and closes the editor.
    assert await controller.commit_edit("viewer")
    assert controller.edit is None
    assert controller.rows[0]["role"] == "viewer"


@pytest.mark.asyncio
async def test_cancel_discards_draft(controller: DataGridController, store: RecordStore) -> None:
    await controller.refresh()
    controller.start_edit(1, "email")
    controller.set_draft("changed@example.com")

    controller.cancel_edit()

    assert controller.edit is None
    assert store.get_record(2)["email"] == "user2@example.com"


@pytest.mark.asyncio
async def test_commit_without_editor_is_a_noop(controller: DataGridController) -> None:
    assert not await controller.commit_edit("x")


@pytest.mark.asyncio
async def test_unexpected_write_error(store: RecordStore, columns: list[Column]) -> None:
    controller = DataGridController(store, columns)
    await controller.refresh()
    controller.start_edit(0, "name")

    controller.source = FailingSource(ConnectionResetError())
    assert not await controller.commit_edit("Z")
    assert controller.edit.error == "Failed to save"


@pytest.mark.asyncio
async def test_edit_closes_when_row_leaves_the_page(controller: DataGridController) -> None:
    await controller.refresh()
    controller.start_edit(0, "name")

    controller.next_page()
    await controller.refresh()

    assert controller.edit is None


@pytest.mark.asyncio
async def test_edit_survives_refetch_of_same_page(controller: DataGridController) -> None:
    await controller.refresh()
    controller.start_edit(2, "name")

    await controller.refresh()

    assert controller.edit is not None
    assert controller.edit.row_id == 3


def test_render_rows_uses_display_transform(columns: list[Column]) -> None:
    controller = DataGridController(RecordStore(0), columns)
    controller.rows = [{"id": 1, "name": None, "created_at": "not a date"}]

    rendered = controller.render_rows()[0]

    assert rendered[0] == 1
    assert rendered[1] == ""
    assert rendered[5] == "not a date"


# -- resizing --


def test_columns_get_declared_or_default_width(store: RecordStore) -> None:
    controller = DataGridController(
        store, [Column("id", "ID", width=90), Column("name", "Name")], default_width=150
    )
    assert controller.column_widths == {"id": 90, "name": 150}


def test_resize_updates_width(controller: DataGridController) -> None:
    controller.begin_resize("name", 100)
    controller.resize_move(50)
    assert controller.column_widths["name"] == 170

    controller.resize_move(-1000)
    assert controller.column_widths["name"] == 80

    controller.end_resize()
    assert controller.surface.listener_count == 0
    controller.resize_move(400)
    assert controller.column_widths["name"] == 80


@pytest.mark.asyncio
async def test_close_releases_everything(store: RecordStore, columns: list[Column]) -> None:
    surface = PointerSurface()
    controller = DataGridController(store, columns, surface=surface)
    await controller.refresh()
    controller.start_edit(0, "name")
    controller.begin_resize("email", 0)
    pending = controller.begin_fetch()

    controller.close()

    assert surface.listener_count == 0
    assert controller.edit is None
    assert not await controller.run_fetch(pending)
