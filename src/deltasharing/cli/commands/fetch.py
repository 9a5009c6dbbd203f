"""Fetch command for CLI."""

from __future__ import annotations

from pathlib import Path

import typer

from deltasharing.cli.main import (
    app,
    format_size,
    load_cache,
    load_transport,
    report_errors,
)
from deltasharing.core.fetching import DataFileCache
from deltasharing.progress import RichProgressReporter


@app.command()
def fetch(
    ctx: typer.Context,
    url: str = typer.Argument(help="Presigned data-file URL from 'files --urls'."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Also write the file to this path."
    ),
) -> None:
    """Download a data file into the local cache."""
    transport = load_transport(ctx)
    cache = DataFileCache(load_cache(ctx), transport)
    with report_errors():
        with RichProgressReporter() as reporter:
            entry = cache.fetch_entry(url, progress=reporter)

    state = "cached" if entry.hit else "downloaded"
    typer.echo(f"{entry.key}: {state} ({format_size(len(entry.data))})")

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(entry.data)
        typer.echo(f"Wrote {output}")
