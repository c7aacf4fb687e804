"""Framework-independent state machine behind the record grid.

:class:`DataGridController` owns everything the grid shows: the view state,
the current page of rows, the load state, the edit session and the column
widths.  The Reflex mixin in :mod:`reflex_data_explorer.grid_state` keeps one
controller per client and mirrors its fields into reactive vars.

Loading follows ``idle -> loading -> loaded | error`` on every view change.
Fetches are not cancelled, but each one is tagged with a sequence number
when it is issued; a response (or failure) that arrives after a newer fetch
was issued is dropped, so a slow stale page can never overwrite a newer one.
"""

import enum
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any, Literal

from reflex_data_explorer import view_state
from reflex_data_explorer.errors import DataSourceError
from reflex_data_explorer.models import (
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_PAGE_SIZE,
    MIN_COLUMN_WIDTH,
    Column,
    EditSession,
    FetchParams,
    Record,
    ViewState,
)
from reflex_data_explorer.resizer import POINTER_MOVE, POINTER_UP, ColumnResizer, PointerSurface
from reflex_data_explorer.source import RemoteDataSource

logger = logging.getLogger(__name__)

SKELETON_ROWS: int = 5

BodyState = Literal["skeleton", "error", "empty", "rows"]


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class FetchTicket:
    """A fetch that has been issued but not yet applied."""

    seq: int
    params: FetchParams


class DataGridController:
    """View state, loading, editing and resizing for one grid instance.

    Args:
        source: Where pages are read from and cell writes go to.
        columns: Column definitions, in display order.
        page_size: Initial page size (one of ``PAGE_SIZE_OPTIONS``).
        default_width: Width of columns that do not declare one.
        min_width: Smallest width a resize can produce.
        surface: Pointer surface for resize gestures; a private one is
            created when omitted.
    """

    def __init__(
        self,
        source: RemoteDataSource,
        columns: Sequence[Column],
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        default_width: int = DEFAULT_COLUMN_WIDTH,
        min_width: int = MIN_COLUMN_WIDTH,
        surface: PointerSurface | None = None,
    ) -> None:
        self.source = source
        self.columns: list[Column] = list(columns)
        self.view = ViewState(page_size=page_size)
        self.rows: list[Record] = []
        self.total: int = 0
        self.load_state = LoadState.IDLE
        self.error: str | None = None
        self.edit: EditSession | None = None
        self.column_widths: dict[str, int] = {
            c.key: c.width if c.width is not None else default_width for c in self.columns
        }
        self.surface = surface if surface is not None else PointerSurface()
        self.resizer = ColumnResizer(self.surface, self._apply_width, min_width=min_width)
        self.last_fetch_ms: float | None = None
        self._issued: int = 0

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def column(self, key: str) -> Column:
        for col in self.columns:
            if col.key == key:
                return col
        raise KeyError(key)

    @property
    def total_pages(self) -> int:
        return view_state.total_pages(self.total, self.view.page_size)

    @property
    def body_state(self) -> BodyState:
        """What the result area shows.

        The skeleton only replaces the body while loading with nothing to
        show yet; otherwise the last known rows stay visible.
        """
        if self.load_state is LoadState.LOADING and not self.rows:
            return "skeleton"
        if self.load_state is LoadState.ERROR:
            return "error"
        if not self.rows:
            return "empty"
        return "rows"

    def render_rows(self) -> list[list[Any]]:
        """Display values of every rendered cell, row by row."""
        return [[col.render(row) for col in self.columns] for row in self.rows]

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def begin_fetch(self) -> FetchTicket:
        """Issue a fetch for the current view and enter ``loading``."""
        self._issued += 1
        self.load_state = LoadState.LOADING
        self.error = None
        return FetchTicket(seq=self._issued, params=FetchParams.from_view(self.view))

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.seq == self._issued

    async def run_fetch(self, ticket: FetchTicket) -> bool:
        """Await *ticket*'s page and apply it if no newer fetch was issued.

        Returns:
            ``True`` if the outcome was applied, ``False`` if it was stale.
        """
        t0 = time.perf_counter()
        try:
            result = await self.source.fetch_page(ticket.params)
        except DataSourceError as err:
            return self._apply_failure(ticket, err.message)
        except Exception:
            logger.exception("fetch #%d failed", ticket.seq)
            return self._apply_failure(ticket, "Failed to load data")

        if not self.is_current(ticket):
            logger.debug("dropping stale page #%d (latest is #%d)", ticket.seq, self._issued)
            return False

        self.last_fetch_ms = (time.perf_counter() - t0) * 1000
        self.rows = list(result.rows)
        self.total = result.total
        self.load_state = LoadState.LOADED
        self._drop_orphaned_edit()
        return True

    async def refresh(self) -> bool:
        """Fetch the current view and apply the result."""
        return await self.run_fetch(self.begin_fetch())

    def _apply_failure(self, ticket: FetchTicket, message: str) -> bool:
        if not self.is_current(ticket):
            logger.debug("dropping stale failure #%d: %s", ticket.seq, message)
            return False
        self.load_state = LoadState.ERROR
        self.error = message
        logger.info("fetch #%d failed: %s", ticket.seq, message)
        return True

    def _drop_orphaned_edit(self) -> None:
        session = self.edit
        if session is None:
            return
        if session.row_index >= len(self.rows) or self.rows[session.row_index].get("id") != session.row_id:
            logger.debug("closing edit of row %r: no longer on this page", session.row_id)
            self.edit = None

    # ------------------------------------------------------------------
    # View-state changes.  Each returns True when the view changed, which
    # means the caller should refresh.
    # ------------------------------------------------------------------

    def _set_view(self, new: ViewState) -> bool:
        changed = new != self.view
        self.view = new
        return changed

    def toggle_sort(self, key: str) -> bool:
        self.column(key)
        return self._set_view(view_state.toggle_sort(self.view, key))

    def set_filter_text(self, text: str) -> bool:
        return self._set_view(view_state.set_filter_text(self.view, text))

    def set_page_size(self, page_size: int) -> bool:
        return self._set_view(view_state.set_page_size(self.view, page_size))

    def go_to_page(self, page: int) -> bool:
        return self._set_view(view_state.go_to_page(self.view, page, self.total))

    def first_page(self) -> bool:
        return self.go_to_page(1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.view.page - 1)

    def next_page(self) -> bool:
        return self.go_to_page(self.view.page + 1)

    def last_page(self) -> bool:
        return self.go_to_page(self.total_pages)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def start_edit(self, row_index: int, key: str) -> bool:
        """Open an editor on a cell; only editable columns accept one."""
        try:
            col = self.column(key)
        except KeyError:
            return False
        if not col.editable or not 0 <= row_index < len(self.rows):
            return False
        row = self.rows[row_index]
        value = col.raw_value(row)
        self.edit = EditSession(
            row_index=row_index,
            column_key=key,
            draft_value="" if value is None else str(value),
            row_id=row.get("id"),
        )
        return True

    def set_draft(self, value: str) -> None:
        if self.edit is not None:
            self.edit = replace(self.edit, draft_value=value)

    def cancel_edit(self) -> None:
        self.edit = None

    async def commit_edit(self, value: str | None = None) -> bool:
        """Write the draft (or *value*) and close the editor on success.

        On failure the editor stays open with the draft and the error
        message so the user can correct it or cancel.  Calling this with no
        open editor does nothing.

        Returns:
            ``True`` if the write succeeded.
        """
        session = self.edit
        if session is None:
            return False
        if value is None:
            value = session.draft_value

        row = self._row_for(session)
        try:
            await self.source.write_cell(row, session.column_key, value)
        except DataSourceError as err:
            return self._keep_failed_edit(session, value, err.message)
        except Exception:
            logger.exception("write of row %r failed", session.row_id)
            return self._keep_failed_edit(session, value, "Failed to save")

        self._patch_rows(session.row_id, session.column_key, value)
        if self.edit is session:
            self.edit = None
        return True

    def _row_for(self, session: EditSession) -> Record:
        for row in self.rows:
            if row.get("id") == session.row_id:
                return row
        return {"id": session.row_id}

    def _patch_rows(self, row_id: Any, key: str, value: Any) -> None:
        self.rows = [
            {**row, key: value} if row.get("id") == row_id else row for row in self.rows
        ]

    def _keep_failed_edit(self, session: EditSession, value: str, message: str) -> bool:
        logger.warning("write of %s on row %r failed: %s", session.column_key, session.row_id, message)
        if self.edit is session:
            self.edit = replace(session, draft_value=value, error=message)
        return False

    # ------------------------------------------------------------------
    # Resizing
    # ------------------------------------------------------------------

    def begin_resize(self, key: str, x: float) -> None:
        self.resizer.begin(key, x, self.column_widths[key])

    def resize_move(self, x: float) -> None:
        self.surface.dispatch(POINTER_MOVE, x)

    def end_resize(self, x: float = 0.0) -> None:
        self.surface.dispatch(POINTER_UP, x)

    def _apply_width(self, key: str, width: int) -> None:
        self.column_widths[key] = width

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release resize listeners, drop the editor and ignore in-flight pages."""
        self.resizer.close()
        self.edit = None
        self._issued += 1
