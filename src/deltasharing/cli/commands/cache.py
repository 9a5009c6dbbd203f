"""Cache commands for CLI: stats and clear."""

from __future__ import annotations

import typer

from deltasharing.cli.main import app, format_size, load_cache, report_errors


cache_app = typer.Typer(help="Inspect and clear the local data-file cache.")
app.add_typer(cache_app, name="cache")


@cache_app.command()
def stats(ctx: typer.Context) -> None:
    """Show the size and number of cached data files."""
    cache = load_cache(ctx)
    statistics = cache.statistics()
    typer.echo(f"Cache directory: {cache.cache_dir}")
    typer.echo(f"Files: {statistics['file_count']}")
    typer.echo(f"Size: {format_size(statistics['total_size'])}")


@cache_app.command()
def clear(
    ctx: typer.Context,
    prefix: str | None = typer.Option(
        None,
        "--prefix",
        help="Only remove entries under this key prefix, e.g. a host name.",
    ),
) -> None:
    """Remove cached data files."""
    cache = load_cache(ctx)
    with report_errors():
        if prefix is None:
            count = cache.clear()
        else:
            count = cache.invalidate_prefix(prefix)
    typer.echo(f"Removed {count} cached file(s).")
