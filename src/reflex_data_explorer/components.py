"""Reflex components rendering a :class:`RecordGridMixin` state.

The table itself is built from Radix theme primitives.  The one piece that
needs browser-side code is the column resize handle: a drag must keep
tracking the pointer after it leaves the handle, so the handle attaches
``pointermove`` / ``pointerup`` listeners to ``window``.  The
``ColumnResizeHandle`` React component below is injected into compiled
pages with ``add_custom_code()``; it owns those listeners and removes them
on pointer-up, when a new drag starts, or when it unmounts mid-drag.
"""

from typing import Any

import reflex as rx

from reflex_data_explorer.models import PAGE_SIZE_OPTIONS


# ---------------------------------------------------------------------------
# Event-handler argument helpers
# ---------------------------------------------------------------------------

def _on_pointer_x_spec(x: rx.Var) -> list[rx.Var]:
    return [x]


_RESIZE_HANDLE_JS = """
// ---------------------------------------------------------------------------
// ColumnResizeHandle: drag to resize.  Window listeners are acquired on
// pointer-down and released on pointer-up, on the next pointer-down, or on
// unmount -- whichever comes first.  Moves are coalesced to one per frame.
// ---------------------------------------------------------------------------
const ColumnResizeHandle = (props) => {
  const { onResizeStart, onResizeMove, onResizeEnd, title } = props;
  const releaseRef = React.useRef(null);

  const release = React.useCallback(() => {
    const fn = releaseRef.current;
    releaseRef.current = null;
    if (fn) fn();
  }, []);

  React.useEffect(() => release, [release]);

  const onPointerDown = React.useCallback((event) => {
    event.preventDefault();
    event.stopPropagation();
    release();

    let frame = 0;
    let lastX = event.clientX;
    const move = (e) => {
      lastX = e.clientX;
      if (frame) return;
      frame = requestAnimationFrame(() => {
        frame = 0;
        if (typeof onResizeMove === "function") onResizeMove(lastX);
      });
    };
    const up = (e) => {
      release();
      if (typeof onResizeMove === "function") onResizeMove(e.clientX);
      if (typeof onResizeEnd === "function") onResizeEnd(e.clientX);
    };

    window.addEventListener("pointermove", move);
    window.addEventListener("pointerup", up);
    releaseRef.current = () => {
      if (frame) cancelAnimationFrame(frame);
      window.removeEventListener("pointermove", move);
      window.removeEventListener("pointerup", up);
    };

    if (typeof onResizeStart === "function") onResizeStart(event.clientX);
  }, [onResizeStart, onResizeMove, onResizeEnd, release]);

  return React.createElement("div", {
    onPointerDown,
    title: title || "Resize column",
    "aria-hidden": true,
    style: {
      position: "absolute",
      right: 0,
      top: 0,
      height: "100%",
      width: "8px",
      cursor: "col-resize",
      touchAction: "none",
    },
  });
};
ColumnResizeHandle.displayName = "ColumnResizeHandle";
"""


class ColumnResizeHandle(rx.Component):
    """Drag handle at the right edge of a header cell.

    Reports the pointer's ``clientX`` at drag start, on every animation
    frame while dragging, and on release.
    """

    tag: str = "ColumnResizeHandle"

    title: rx.Var[str]

    on_resize_start: rx.EventHandler[_on_pointer_x_spec]
    on_resize_move: rx.EventHandler[_on_pointer_x_spec]
    on_resize_end: rx.EventHandler[_on_pointer_x_spec]

    def add_imports(self) -> dict:
        return {"react": [rx.ImportVar(tag="React", is_default=True)]}

    def add_custom_code(self) -> list[str]:
        """Inject the ColumnResizeHandle component into the compiled page."""
        return [_RESIZE_HANDLE_JS]


column_resize_handle = ColumnResizeHandle.create


# ---------------------------------------------------------------------------
# Grid pieces
# ---------------------------------------------------------------------------

def _header_cell(state_cls: type, header: Any) -> rx.Component:
    return rx.table.column_header_cell(
        rx.box(
            rx.button(
                rx.text(header.label, size="1", weight="bold"),
                rx.cond(
                    header.arrow != "",
                    rx.text(header.arrow, size="1", aria_hidden="true"),
                ),
                on_click=state_cls.toggle_grid_sort(header.key),
                variant="ghost",
                size="1",
                color_scheme="gray",
                width="100%",
                justify="start",
            ),
            column_resize_handle(
                on_resize_start=lambda x: state_cls.start_grid_resize(header.key, x),
                on_resize_move=state_cls.grid_resize_move,
                on_resize_end=state_cls.end_grid_resize,
            ),
            position="relative",
            display="flex",
            align_items="center",
        ),
        width=header.width_px,
        min_width=header.width_px,
        aria_sort=header.aria_sort,
        scope="col",
    )


def _cell_editor(state_cls: type, cell: Any) -> rx.Component:
    # Columns with a fixed set of values get a select; the rest free text.
    return rx.vstack(
        rx.cond(
            cell.has_options,
            rx.select(
                cell.options,
                default_value=state_cls.grid_edit_draft,
                on_change=state_cls.choose_grid_edit_option,
                size="1",
                width="100%",
            ),
            rx.input(
                default_value=state_cls.grid_edit_draft,
                auto_focus=True,
                on_change=state_cls.set_grid_edit_draft,
                on_key_down=state_cls.handle_grid_edit_key,
                on_blur=state_cls.handle_grid_edit_blur,
                size="1",
                width="100%",
            ),
        ),
        rx.cond(
            state_cls.grid_edit_error != "",
            rx.text(state_cls.grid_edit_error, size="1", color_scheme="red"),
        ),
        spacing="1",
        width="100%",
    )


def _body_cell(state_cls: type, row: Any, cell: Any) -> rx.Component:
    return rx.table.cell(
        rx.cond(
            cell.editing,
            _cell_editor(state_cls, cell),
            rx.text(cell.text, size="2"),
        ),
        width=cell.width_px,
        min_width=cell.width_px,
        on_double_click=state_cls.start_grid_edit(row.index, cell.key),
        tab_index=0,
        role="gridcell",
        cursor=rx.cond(cell.editable, "text", "default"),
    )


def _body_row(state_cls: type, row: Any) -> rx.Component:
    return rx.table.row(
        rx.foreach(row.cells, lambda cell: _body_cell(state_cls, row, cell)),
        _hover={"background": "var(--gray-a2)"},
    )


def _skeleton_body(state_cls: type) -> rx.Component:
    return rx.foreach(
        state_cls.grid_skeleton_rows,
        lambda _i: rx.table.row(
            rx.foreach(
                state_cls.grid_headers,
                lambda header: rx.table.cell(
                    rx.skeleton(rx.box(height="1em", width="100%")),
                    width=header.width_px,
                ),
            ),
        ),
    )


def _message_row(state_cls: type, message: Any, color: str) -> rx.Component:
    return rx.table.row(
        rx.table.cell(
            rx.text(message, size="2", color=color),
            col_span=state_cls.grid_column_count,
            padding_y="1.5em",
        ),
    )


def _toolbar(state_cls: type) -> rx.Component:
    return rx.hstack(
        rx.input(
            placeholder="Filter...",
            value=state_cls.grid_filter_text,
            on_change=state_cls.set_grid_filter,
            size="1",
            width="18em",
            aria_label="Filter",
        ),
        rx.spacer(),
        rx.text("Rows / page", size="1", color="var(--gray-11)"),
        rx.select(
            [str(n) for n in PAGE_SIZE_OPTIONS],
            value=state_cls.grid_page_size,
            on_change=state_cls.set_grid_page_size,
            size="1",
        ),
        align="center",
        spacing="2",
        width="100%",
        padding="0.5em 0.8em",
        border_bottom="1px solid var(--gray-a5)",
    )


def _pagination(state_cls: type) -> rx.Component:
    on_first = state_cls.grid_page == 1
    on_last = state_cls.grid_page == state_cls.grid_total_pages
    return rx.hstack(
        rx.text(
            "Page ",
            rx.text.strong(state_cls.grid_page),
            " of ",
            rx.text.strong(state_cls.grid_total_pages),
            " • ",
            state_cls.grid_total,
            " rows",
            size="1",
            color="var(--gray-11)",
        ),
        rx.spacer(),
        rx.button("«", on_click=state_cls.grid_first_page, disabled=on_first,
                  size="1", variant="outline", aria_label="First page"),
        rx.button("‹", on_click=state_cls.grid_previous_page, disabled=on_first,
                  size="1", variant="outline", aria_label="Previous page"),
        rx.button("›", on_click=state_cls.grid_next_page, disabled=on_last,
                  size="1", variant="outline", aria_label="Next page"),
        rx.button("»", on_click=state_cls.grid_last_page, disabled=on_last,
                  size="1", variant="outline", aria_label="Last page"),
        align="center",
        spacing="2",
        width="100%",
        padding="0.5em 0.8em",
        border_top="1px solid var(--gray-a5)",
    )


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def record_grid(
    state_cls: type,
    *,
    aria_label: str = "Data table",
    max_height: str = "70vh",
    **extra_props: Any,
) -> rx.Component:
    """Return a grid bound to a :class:`RecordGridMixin` state.

    Renders the filter / page-size toolbar, sortable and resizable headers,
    the body (skeleton, error message, "No data", or rows with the inline
    editor) and the pagination bar.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`RecordGridMixin`.
        aria_label: Accessible name of the grid region.
        max_height: CSS max height of the scrollable table area.
        **extra_props: Additional props for the outer container.

    Returns:
        A Reflex component.
    """
    body = rx.match(
        state_cls.grid_body_state,
        ("skeleton", _skeleton_body(state_cls)),
        ("error", _message_row(state_cls, state_cls.grid_error, "var(--red-11)")),
        ("empty", _message_row(state_cls, "No data", "var(--gray-10)")),
        rx.foreach(state_cls.grid_rows, lambda row: _body_row(state_cls, row)),
    )

    table = rx.box(
        rx.table.root(
            rx.table.header(
                rx.table.row(
                    rx.foreach(state_cls.grid_headers, lambda h: _header_cell(state_cls, h)),
                ),
            ),
            rx.table.body(body),
            size="1",
            variant="ghost",
            role="grid",
            aria_colcount=state_cls.grid_column_count,
            table_layout="fixed",
        ),
        overflow="auto",
        max_height=max_height,
    )

    props: dict[str, Any] = {
        "border": "1px solid var(--gray-a5)",
        "border_radius": "8px",
        "role": "region",
        "aria_label": aria_label,
        "on_unmount": state_cls.handle_grid_unmount,
        **extra_props,
    }
    return rx.box(_toolbar(state_cls), table, _pagination(state_cls), **props)


def record_grid_stats_bar(state_cls: type) -> rx.Component:
    """Return a one-line bar with the load state and last fetch metrics."""
    return rx.box(
        rx.hstack(
            rx.badge(state_cls.grid_load_state, variant="soft", size="1"),
            rx.text(
                state_cls.grid_stats,
                size="1",
                color="var(--gray-9)",
                font_family="monospace",
            ),
            spacing="2",
            align="center",
        ),
        padding="0.4em 0.8em",
        border_radius="6px",
        background="var(--blue-a2)",
        border="1px solid var(--blue-a5)",
        margin_bottom="0.5em",
    )
