"""Example Reflex app demonstrating the record grid.

Two tabs share one :class:`RecordStore`:
  1. In-process -- the grid reads and writes the store directly.
  2. Over HTTP -- the same store, reached through the ``/api/records``
     binding that this app mounts on its own backend, using
     :class:`HttpDataSource`.  Edits made in one tab show up in the other
     after a refresh.
"""

import contextlib
import os

import reflex as rx

from reflex_data_explorer import (
    HttpDataSource,
    RecordGridMixin,
    RecordStore,
    create_api,
    get_settings,
    record_grid,
    record_grid_stats_bar,
    setup_logging,
    user_columns,
)

SETTINGS = get_settings()
setup_logging(SETTINGS.log_level)

STORE = RecordStore.from_settings(SETTINGS)
COLUMNS = user_columns()

BACKEND_URL: str = os.environ.get("DEMO_BACKEND_URL", "http://localhost:8000")
REMOTE = HttpDataSource(f"{BACKEND_URL}{SETTINGS.api_prefix}")


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class LocalUsersState(RecordGridMixin, rx.State):
    """Grid over the in-process store."""

    def load(self):
        yield from self.set_data_source(STORE, COLUMNS, page_size=SETTINGS.default_page_size)


class RemoteUsersState(RecordGridMixin, rx.State):
    """Grid over the HTTP binding of the same store."""

    def load(self):
        yield from self.set_data_source(REMOTE, COLUMNS, page_size=SETTINGS.default_page_size)


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------

def _hint(text: str) -> rx.Component:
    return rx.text(text, size="2", color="var(--gray-10)", margin_bottom="0.5em")


def _grid_tab(state_cls: type, hint: str, label: str) -> rx.Component:
    return rx.box(
        _hint(hint),
        rx.cond(
            state_cls.grid_ready,
            rx.fragment(
                record_grid_stats_bar(state_cls),
                record_grid(state_cls, aria_label=label),
            ),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding_top="1em",
    )


def local_tab() -> rx.Component:
    return _grid_tab(
        LocalUsersState,
        "Click a header to sort, double-click a cell to edit, drag a header edge to resize.",
        "Users (in-process)",
    )


def remote_tab() -> rx.Component:
    return _grid_tab(
        RemoteUsersState,
        f"Same records over HTTP at {SETTINGS.api_prefix}/records.",
        "Users (HTTP)",
    )


def index() -> rx.Component:
    return rx.box(
        rx.heading("Data Explorer", size="6", margin_bottom="0.5em"),
        rx.tabs.root(
            rx.tabs.list(
                rx.tabs.trigger("In-process", value="local"),
                rx.tabs.trigger("Over HTTP", value="remote"),
            ),
            rx.tabs.content(local_tab(), value="local"),
            rx.tabs.content(remote_tab(), value="remote"),
            default_value="local",
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


@contextlib.asynccontextmanager
async def close_remote_client():
    """Lifespan task: close the HTTP client when the backend stops."""
    yield
    await REMOTE.aclose()


app = rx.App(api_transformer=create_api(STORE, prefix=SETTINGS.api_prefix))
app.register_lifespan_task(close_remote_client)
app.add_page(index, on_load=[LocalUsersState.load, RemoteUsersState.load])
