"""CLI application and shared helpers for deltasharing."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from deltasharing.config import CACHE_DIR_ENV_VAR, PROFILE_ENV_VAR
from deltasharing.core.exceptions import DeltaSharingError


if TYPE_CHECKING:
    from deltasharing.adapters.cache import FileCache
    from deltasharing.adapters.http import HttpTransport
    from deltasharing.core.services import SharingClient


app = typer.Typer(
    name="deltasharing",
    help="Browse Delta Sharing servers and fetch shared data files.",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Options given before the command name."""

    profile: Path | None = None
    cache_dir: Path | None = None


@app.callback()
def _global_options(
    ctx: typer.Context,
    profile: Path | None = typer.Option(
        None,
        "--profile",
        "-p",
        envvar=PROFILE_ENV_VAR,
        help="Path to the profile file with endpoint and bearer token.",
    ),
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        envvar=CACHE_DIR_ENV_VAR,
        help="Directory for downloaded data files.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and cache activity.",
    ),
) -> None:
    """Browse Delta Sharing servers and fetch shared data files."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = CliState(profile=profile, cache_dir=cache_dir)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


@contextmanager
def report_errors() -> Iterator[None]:
    """Print library errors as 'Error:' and 'Hint:' lines and exit with 1."""
    try:
        yield
    except DeltaSharingError as e:
        typer.echo(f"Error: {e}", err=True)
        if e.recovery_hint:
            typer.echo(f"Hint: {e.recovery_hint}", err=True)
        raise typer.Exit(1) from None


def load_transport(ctx: typer.Context) -> HttpTransport:
    """Build the HTTP transport for the profile given on the command line.

    Raises:
        typer.Exit: If no profile was given or it cannot be loaded.
    """
    from deltasharing.adapters.http import HttpTransport
    from deltasharing.config import load_profile

    state = _state(ctx)
    if state.profile is None:
        typer.echo("Error: No profile given.", err=True)
        typer.echo(
            f"Hint: Pass --profile PATH or set {PROFILE_ENV_VAR}.", err=True
        )
        raise typer.Exit(1)

    with report_errors():
        return HttpTransport(load_profile(state.profile))


def load_client(ctx: typer.Context) -> SharingClient:
    """Build a SharingClient for the profile given on the command line."""
    from deltasharing.core.services import SharingClient

    return SharingClient(load_transport(ctx))


def load_cache(ctx: typer.Context) -> FileCache:
    """Open the file cache at --cache-dir or the default location."""
    from deltasharing.adapters.cache import FileCache
    from deltasharing.config import default_cache_dir

    state = _state(ctx)
    return FileCache(state.cache_dir if state.cache_dir is not None else default_cache_dir())


def format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable format."""
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def main() -> None:
    """Entry point for the CLI."""
    app()
