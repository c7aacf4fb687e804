"""CLI for the Data Explorer demo app.

Commands::

    python -m data_explorer_demo.cli        # Run the Reflex demo app
    python -m data_explorer_demo.cli run    # Same as above
    python -m data_explorer_demo.cli api    # Serve only the HTTP binding with uvicorn
"""

import os
from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(
    name="demo",
    help="Data Explorer demo app.",
    invoke_without_command=True,
)


def _run_app() -> None:
    """Start the Reflex demo app."""
    app_dir = Path(__file__).resolve().parent.parent
    os.chdir(app_dir)

    from reflex.reflex import cli

    cli(["run"])


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """Run the demo app (default when no subcommand is given)."""
    if ctx.invoked_subcommand is None:
        _run_app()


@app.command()
def run() -> None:
    """Run the Reflex demo app."""
    _run_app()


@app.command()
def api(
    host: Annotated[str, typer.Option(help="Interface to bind")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on")] = 8000,
) -> None:
    """Serve the record store's HTTP binding on its own."""
    import uvicorn

    from reflex_data_explorer import RecordStore, create_api, get_settings, setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)
    store = RecordStore.from_settings(settings)
    typer.echo(f"Serving {settings.seed_size} records at http://{host}:{port}{settings.api_prefix}/records")
    uvicorn.run(create_api(store, prefix=settings.api_prefix), host=host, port=port)


def main() -> None:
    """Entry point for the ``demo`` script."""
    app()


if __name__ == "__main__":
    main()
