"""Listing commands for CLI: shares, schemas and tables."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from deltasharing.cli.main import app, load_client, report_errors
from deltasharing.core.exceptions import InvalidArgumentError
from deltasharing.core.models import Schema, Share


def _print_table(title: str, columns: list[str], rows: list[list[str]]) -> None:
    if not rows:
        typer.echo(f"No {title.lower()} found.")
        return
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*row)
    Console().print(table)


@app.command()
def shares(
    ctx: typer.Context,
    max_results: int | None = typer.Option(
        None, "--max-results", help="Page size to request from the server."
    ),
) -> None:
    """List the shares visible to the recipient."""
    client = load_client(ctx)
    with report_errors():
        found = list(client.iter_shares(max_results))
    _print_table("Shares", ["Name", "ID"], [[s.name, s.id or ""] for s in found])


@app.command()
def schemas(
    ctx: typer.Context,
    share: str = typer.Argument(help="Name of the share."),
    max_results: int | None = typer.Option(
        None, "--max-results", help="Page size to request from the server."
    ),
) -> None:
    """List the schemas in a share."""
    client = load_client(ctx)
    with report_errors():
        found = list(client.iter_schemas(Share(name=share), max_results))
    _print_table(
        "Schemas", ["Share", "Name"], [[s.share, s.name] for s in found]
    )


@app.command()
def tables(
    ctx: typer.Context,
    schema: str = typer.Argument(help="Schema as SHARE.SCHEMA."),
    max_results: int | None = typer.Option(
        None, "--max-results", help="Page size to request from the server."
    ),
) -> None:
    """List the tables in a schema."""
    client = load_client(ctx)
    with report_errors():
        share_name, sep, schema_name = schema.partition(".")
        if not sep or "." in schema_name:
            raise InvalidArgumentError(
                f"Invalid schema '{schema}', expected '<share>.<schema>'"
            )
        found = list(
            client.iter_tables(Schema(name=schema_name, share=share_name), max_results)
        )
    _print_table("Tables", ["Table"], [[t.coordinate] for t in found])


@app.command(name="all-tables")
def all_tables(
    ctx: typer.Context,
    share: str | None = typer.Option(
        None, "--share", "-s", help="Only list tables of this share."
    ),
) -> None:
    """List the tables across all schemas of one or every share."""
    client = load_client(ctx)
    with report_errors():
        if share is None:
            found = client.list_all_tables()
        else:
            found = list(client.iter_all_tables(Share(name=share)))
    _print_table("Tables", ["Table"], [[t.coordinate] for t in found])
