"""CLI for reflex-data-explorer -- query the reference store or serve the grid.

Usage::

    # Print one page of the reference store
    reflex-data-explorer query --page 2 --page-size 10 --sort name --desc

    # Free-text filter across id / name / email / role / status
    reflex-data-explorer query --q invited

    # Launch the grid in the browser, backed by a fresh in-memory store
    reflex-data-explorer serve --seed-size 1000 --port 3000
"""

import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from reflex_data_explorer.config import get_settings
from reflex_data_explorer.errors import DataSourceError
from reflex_data_explorer.logging_config import setup_logging
from reflex_data_explorer.models import FetchParams, user_columns
from reflex_data_explorer.record_store import RecordStore
from reflex_data_explorer.view_state import total_pages

app = typer.Typer(
    name="reflex-data-explorer",
    help="Browse and edit a record set in a paged, sortable grid.",
    no_args_is_help=True,
)


def _build_store(seed_size: int | None) -> RecordStore:
    return RecordStore.from_settings(get_settings(), seed_size=seed_size)


@app.command()
def query(
    page: Annotated[int, typer.Option("--page", "-p", help="1-based page number")] = 1,
    page_size: Annotated[int, typer.Option("--page-size", "-n", help="Rows per page")] = 20,
    sort: Annotated[Optional[str], typer.Option("--sort", "-s", help="Field to sort by")] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending")] = False,
    q: Annotated[str, typer.Option("--q", "-q", help="Free-text filter")] = "",
    seed_size: Annotated[Optional[int], typer.Option("--seed-size", help="Records to seed")] = None,
) -> None:
    """Print one page of the reference record store."""
    setup_logging(get_settings().log_level)
    store = _build_store(seed_size)
    params = FetchParams(
        page=page,
        page_size=page_size,
        sort_key=sort,
        sort_dir=("desc" if desc else "asc") if sort else None,
        filters={"q": q} if q else {},
    )
    try:
        result = store.query(params)
    except DataSourceError as err:
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(code=1)

    columns = user_columns()
    table = Table(title=f"Records (page {page} of {total_pages(result.total, page_size)})")
    for col in columns:
        table.add_column(col.header)
    for row in result.rows:
        table.add_row(*(str(col.render(row)) for col in columns))

    console = Console()
    console.print(table)
    console.print(f"{len(result.rows)} shown / {result.total} matching")


def _build_app_code(seed_size: int, title: str, api_prefix: str, log_level: str) -> str:
    """Generate the Reflex app module source code."""
    template = _APP_TEMPLATE
    template = template.replace("__SEED_SIZE__", str(seed_size))
    template = template.replace("__TITLE__", title.replace('"', '\\"'))
    template = template.replace("__API_PREFIX__", api_prefix)
    template = template.replace("__LOG_LEVEL__", log_level)
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated record explorer app."""

import reflex as rx

from reflex_data_explorer import (
    RecordGridMixin,
    RecordStore,
    create_api,
    get_settings,
    record_grid,
    record_grid_stats_bar,
    setup_logging,
    user_columns,
)

setup_logging("__LOG_LEVEL__")

STORE = RecordStore.from_settings(get_settings(), seed_size=__SEED_SIZE__)
COLUMNS = user_columns()


class ExplorerState(RecordGridMixin, rx.State):
    """Grid state backed by the in-process record store."""

    def load_data(self):
        yield from self.set_data_source(STORE, COLUMNS)


def index() -> rx.Component:
    return rx.box(
        rx.heading("__TITLE__", size="6", margin_bottom="0.5em"),
        rx.cond(
            ExplorerState.grid_ready,
            rx.fragment(
                record_grid_stats_bar(ExplorerState),
                record_grid(ExplorerState, aria_label="Data Explorer table"),
            ),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App(api_transformer=create_api(STORE, prefix="__API_PREFIX__"))
app.add_page(index, on_load=ExplorerState.load_data)
'''


@app.command()
def serve(
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    seed_size: Annotated[Optional[int], typer.Option("--seed-size", help="Records to seed")] = None,
    title: Annotated[str, typer.Option("--title", "-t", help="Page title")] = "Data Explorer",
) -> None:
    """Launch the grid in the browser against a fresh in-memory store.

    The store's HTTP binding is mounted on the Reflex backend under the
    configured API prefix (``/api/records`` by default).
    """
    settings = get_settings()
    size = settings.seed_size if seed_size is None else seed_size
    app_code = _build_app_code(size, title, settings.api_prefix, settings.log_level)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="data_explorer_"))
    app_name = "explorer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Seeding {size} records | Port: {port} | API: {settings.api_prefix}/records")

    os.chdir(tmp_dir)

    # reflex's CLI calls sys.exit() on completion, so init runs in a subprocess.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    typer.echo("Starting explorer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
