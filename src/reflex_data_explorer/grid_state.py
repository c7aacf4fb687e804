"""Reflex state mixin binding a :class:`DataGridController` to the browser.

Users inherit from :class:`RecordGridMixin` **and** ``rx.State``, hand it a
data source with :meth:`RecordGridMixin.set_data_source`, and render with
:func:`reflex_data_explorer.components.record_grid`.

Data sources, column display transforms and controllers are not
JSON-serialisable, so they live in module-level registries outside Reflex
state.  Sources are keyed by the state class name; controllers by class
name and client token, so every browser tab gets its own view state.
A tab that is closed never reports its unmount, so the controller registry
is a least-recently-used map capped at ``max_grid_sessions``; the evicted
controller is closed.

Typical usage::

    from reflex_data_explorer import RecordGridMixin, RecordStore, record_grid

    STORE = RecordStore()

    class UsersState(RecordGridMixin, rx.State):
        def load(self):
            yield from self.set_data_source(STORE, USER_COLUMNS)

    def index():
        return rx.cond(UsersState.grid_ready, record_grid(UsersState))
"""

import dataclasses
import logging
from collections import OrderedDict
from collections.abc import Sequence
from typing import Any

import reflex as rx

from reflex_data_explorer.config import get_settings
from reflex_data_explorer.controller import SKELETON_ROWS, DataGridController
from reflex_data_explorer.models import DEFAULT_PAGE_SIZE, Column
from reflex_data_explorer.source import RemoteDataSource
from reflex_data_explorer.view_state import sort_indicator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# View models sent to the frontend
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class GridHeaderView:
    key: str
    label: str
    width_px: str
    aria_sort: str
    arrow: str
    editable: bool


@dataclasses.dataclass
class GridCellView:
    key: str
    text: str
    width_px: str
    editable: bool
    editing: bool
    options: list[str]
    has_options: bool


@dataclasses.dataclass
class GridRowView:
    index: int
    row_id: str
    cells: list[GridCellView]


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class _GridSource:
    source: RemoteDataSource
    columns: list[Column]
    page_size: int
    default_width: int
    min_width: int


_source_registry: dict[str, _GridSource] = {}
_controller_registry: OrderedDict[str, DataGridController] = OrderedDict()


def register_data_source(
    source_id: str,
    source: RemoteDataSource,
    columns: Sequence[Column],
    *,
    page_size: int | None = None,
    default_width: int | None = None,
    min_width: int | None = None,
) -> None:
    """Make *source* available to grids whose state class is *source_id*.

    Sizes left as ``None`` come from :func:`get_settings`.
    """
    settings = get_settings()
    _source_registry[source_id] = _GridSource(
        source,
        list(columns),
        page_size=settings.default_page_size if page_size is None else page_size,
        default_width=settings.default_column_width if default_width is None else default_width,
        min_width=settings.min_column_width if min_width is None else min_width,
    )


def remember_controller(
    controller_id: str,
    controller: DataGridController,
    *,
    limit: int | None = None,
) -> None:
    """Store *controller* as the most recently used one.

    Past *limit* entries (``max_grid_sessions`` by default) the least
    recently used controllers are closed and dropped.
    """
    if limit is None:
        limit = get_settings().max_grid_sessions
    _controller_registry[controller_id] = controller
    _controller_registry.move_to_end(controller_id)
    while len(_controller_registry) > limit:
        evicted_id, evicted = _controller_registry.popitem(last=False)
        logger.debug("evicting idle grid controller %s", evicted_id)
        evicted.close()


def get_controller(controller_id: str, source_id: str) -> DataGridController | None:
    """Return the controller for *controller_id*, creating it from *source_id*.

    Returns ``None`` when nothing is registered under *source_id*.
    """
    controller = _controller_registry.get(controller_id)
    if controller is not None:
        _controller_registry.move_to_end(controller_id)
        return controller
    entry = _source_registry.get(source_id)
    if entry is None:
        return None
    controller = DataGridController(
        entry.source,
        entry.columns,
        page_size=entry.page_size,
        default_width=entry.default_width,
        min_width=entry.min_width,
    )
    remember_controller(controller_id, controller)
    return controller


def drop_controller(controller_id: str) -> None:
    """Close and forget the controller stored under *controller_id*."""
    controller = _controller_registry.pop(controller_id, None)
    if controller is not None:
        controller.close()


_ARROWS: dict[str, str] = {"ascending": "▲", "descending": "▼", "none": ""}


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_header_views(controller: DataGridController) -> list[GridHeaderView]:
    views: list[GridHeaderView] = []
    for col in controller.columns:
        aria = sort_indicator(controller.view, col.key)
        views.append(
            GridHeaderView(
                key=col.key,
                label=col.header,
                width_px=f"{controller.column_widths[col.key]}px",
                aria_sort=aria,
                arrow=_ARROWS[aria],
                editable=col.editable,
            )
        )
    return views


def build_row_views(controller: DataGridController) -> list[GridRowView]:
    edit = controller.edit
    views: list[GridRowView] = []
    for index, (row, rendered) in enumerate(zip(controller.rows, controller.render_rows())):
        cells = [
            GridCellView(
                key=col.key,
                text=_cell_text(value),
                width_px=f"{controller.column_widths[col.key]}px",
                editable=col.editable,
                editing=edit is not None and edit.row_index == index and edit.column_key == col.key,
                options=list(col.value_options or ()),
                has_options=bool(col.value_options),
            )
            for col, value in zip(controller.columns, rendered)
        ]
        views.append(GridRowView(index=index, row_id=_cell_text(row.get("id")), cells=cells))
    return views


# ---------------------------------------------------------------------------
# RecordGridMixin
# ---------------------------------------------------------------------------

class RecordGridMixin(rx.State, mixin=True):
    """Reflex State mixin for a server-paged, sortable, editable record grid.

    This is a Reflex **mixin** (``mixin=True``): every subclass gets its own
    ``grid_*`` vars.  Subclasses must also inherit from ``rx.State``::

        class UsersState(RecordGridMixin, rx.State):
            ...

    Every view change triggers :meth:`refresh_grid`, a background event.
    Background events run concurrently, so a slow page can still be in
    flight when the next one is requested; the controller drops whichever
    response is no longer the latest.
    """

    # -- Frontend state vars --
    grid_ready: bool = False
    grid_headers: list[GridHeaderView] = []
    grid_rows: list[GridRowView] = []
    grid_column_count: int = 0
    grid_total: int = 0
    grid_page: int = 1
    grid_total_pages: int = 1
    grid_page_size: str = str(DEFAULT_PAGE_SIZE)
    grid_sort_key: str = ""
    grid_sort_dir: str = ""
    grid_filter_text: str = ""
    grid_load_state: str = "idle"
    grid_body_state: str = "empty"
    grid_error: str = ""
    grid_edit_draft: str = ""
    grid_edit_error: str = ""
    grid_stats: str = ""
    grid_skeleton_rows: list[int] = list(range(SKELETON_ROWS))

    # -- Backend-only vars --
    _grid_source_id: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_data_source(
        self,
        source: RemoteDataSource,
        columns: Sequence[Column],
        page_size: int | None = None,
    ):
        """Attach *source* to this grid and load the first page.

        This is a **generator** -- use ``yield from self.set_data_source(...)``
        inside your event handler.  The grid is reset to page 1 with no sort
        and no filter.

        Args:
            source: Any :class:`RemoteDataSource`.
            columns: Column definitions in display order.
            page_size: Initial page size (one of ``PAGE_SIZE_OPTIONS``);
                ``default_page_size`` from the settings when omitted.
        """
        source_id = type(self).__name__
        self._grid_source_id = source_id  # type: ignore[assignment]
        register_data_source(source_id, source, columns, page_size=page_size)

        drop_controller(self._grid_controller_id())
        controller = self._grid_controller()
        self.grid_ready = True  # type: ignore[assignment]
        if controller is not None:
            self._sync_grid(controller)
        yield
        yield type(self).refresh_grid

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    @rx.event(background=True)
    async def refresh_grid(self):
        """Fetch the current view; stale responses are discarded."""
        async with self:
            controller = self._grid_controller()
            if controller is None:
                return
            ticket = controller.begin_fetch()
            self._sync_grid(controller)

        applied = await controller.run_fetch(ticket)
        if not applied:
            return

        async with self:
            self._sync_grid(controller)

    # ------------------------------------------------------------------
    # View-state event handlers
    # ------------------------------------------------------------------

    def toggle_grid_sort(self, key: str):
        """Header click: none -> asc -> desc -> none."""
        return self._grid_view_change(lambda c: c.toggle_sort(key))

    def set_grid_filter(self, text: str):
        return self._grid_view_change(lambda c: c.set_filter_text(text))

    def set_grid_page_size(self, size: str):
        return self._grid_view_change(lambda c: c.set_page_size(int(size)))

    def grid_first_page(self):
        return self._grid_view_change(lambda c: c.first_page())

    def grid_previous_page(self):
        return self._grid_view_change(lambda c: c.previous_page())

    def grid_next_page(self):
        return self._grid_view_change(lambda c: c.next_page())

    def grid_last_page(self):
        return self._grid_view_change(lambda c: c.last_page())

    # ------------------------------------------------------------------
    # Edit-session event handlers
    # ------------------------------------------------------------------

    def start_grid_edit(self, row_index: int, key: str) -> None:
        """Cell double-click: open the editor on editable columns."""
        controller = self._grid_controller()
        if controller is not None and controller.start_edit(row_index, key):
            self._sync_grid(controller)

    def set_grid_edit_draft(self, value: str) -> None:
        controller = self._grid_controller()
        if controller is None:
            return
        controller.set_draft(value)
        self.grid_edit_draft = value  # type: ignore[assignment]

    async def handle_grid_edit_key(self, key: str) -> None:
        """Enter saves the draft, Escape discards it."""
        controller = self._grid_controller()
        if controller is None:
            return
        if key == "Enter":
            await controller.commit_edit()
        elif key == "Escape":
            controller.cancel_edit()
        else:
            return
        self._sync_grid(controller)

    async def handle_grid_edit_blur(self, value: str) -> None:
        """Losing focus saves, like Enter."""
        await self._commit_grid_edit(value)

    async def choose_grid_edit_option(self, value: str) -> None:
        """Picking an option in a select editor saves it."""
        await self._commit_grid_edit(value)

    def cancel_grid_edit(self) -> None:
        controller = self._grid_controller()
        if controller is not None:
            controller.cancel_edit()
            self._sync_grid(controller)

    # ------------------------------------------------------------------
    # Resize event handlers
    # ------------------------------------------------------------------

    def start_grid_resize(self, key: str, x: float) -> None:
        controller = self._grid_controller()
        if controller is not None:
            controller.begin_resize(key, x)

    def grid_resize_move(self, x: float) -> None:
        controller = self._grid_controller()
        if controller is not None and controller.resizer.active is not None:
            controller.resize_move(x)
            self._sync_widths(controller)

    def end_grid_resize(self, x: float) -> None:
        controller = self._grid_controller()
        if controller is not None:
            controller.end_resize(x)
            self._sync_widths(controller)

    def handle_grid_unmount(self) -> None:
        """Component teardown: release gestures and forget the controller."""
        drop_controller(self._grid_controller_id())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _grid_controller_id(self) -> str:
        return f"{type(self).__name__}:{self.router.session.client_token}"

    def _grid_controller(self) -> DataGridController | None:
        """Return (or create) this client's controller."""
        return get_controller(
            self._grid_controller_id(),
            self._grid_source_id or type(self).__name__,
        )

    async def _commit_grid_edit(self, value: str) -> None:
        controller = self._grid_controller()
        if controller is None or controller.edit is None:
            return
        await controller.commit_edit(value)
        self._sync_grid(controller)

    def _grid_view_change(self, change):
        controller = self._grid_controller()
        if controller is None:
            return None
        if not change(controller):
            return None
        self._sync_grid(controller)
        return type(self).refresh_grid

    def _sync_widths(self, controller: DataGridController) -> None:
        self.grid_headers = build_header_views(controller)  # type: ignore[assignment]
        self.grid_rows = build_row_views(controller)  # type: ignore[assignment]

    def _sync_grid(self, controller: DataGridController) -> None:
        """Copy the controller's state into the reactive vars."""
        view = controller.view
        self._sync_widths(controller)
        self.grid_column_count = len(controller.columns)  # type: ignore[assignment]
        self.grid_total = controller.total  # type: ignore[assignment]
        self.grid_page = view.page  # type: ignore[assignment]
        self.grid_total_pages = controller.total_pages  # type: ignore[assignment]
        self.grid_page_size = str(view.page_size)  # type: ignore[assignment]
        self.grid_sort_key = view.sort_key or ""  # type: ignore[assignment]
        self.grid_sort_dir = view.sort_dir or ""  # type: ignore[assignment]
        self.grid_filter_text = view.filter_text  # type: ignore[assignment]
        self.grid_load_state = controller.load_state.value  # type: ignore[assignment]
        self.grid_body_state = controller.body_state  # type: ignore[assignment]
        self.grid_error = controller.error or ""  # type: ignore[assignment]

        edit = controller.edit
        self.grid_edit_draft = edit.draft_value if edit else ""  # type: ignore[assignment]
        self.grid_edit_error = (edit.error or "") if edit else ""  # type: ignore[assignment]

        timing = f"  {controller.last_fetch_ms:.0f}ms" if controller.last_fetch_ms is not None else ""
        self.grid_stats = (  # type: ignore[assignment]
            f"page {view.page} of {controller.total_pages}  "
            f"{len(controller.rows)} shown / {controller.total:,} matching{timing}"
        )
