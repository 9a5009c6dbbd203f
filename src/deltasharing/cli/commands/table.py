"""Table commands for CLI: version, metadata and file listing."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table as RichTable

from deltasharing.cli.main import app, format_size, load_client, report_errors
from deltasharing.core.models import Table


@app.command()
def version(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table as SHARE.SCHEMA.TABLE."),
) -> None:
    """Show the current version of a table."""
    client = load_client(ctx)
    with report_errors():
        typer.echo(client.get_table_version(Table.parse(table)))


@app.command()
def metadata(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table as SHARE.SCHEMA.TABLE."),
) -> None:
    """Show the protocol and metadata of a table."""
    client = load_client(ctx)
    with report_errors():
        result = client.get_table_metadata(Table.parse(table))

    meta = result.metadata
    typer.echo(f"Table: {table}")
    typer.echo(f"  Min reader version: {result.protocol.min_reader_version}")
    typer.echo(f"  ID: {meta.id}")
    if meta.name:
        typer.echo(f"  Name: {meta.name}")
    if meta.description:
        typer.echo(f"  Description: {meta.description}")
    typer.echo(f"  Format: {meta.format.provider}")
    if meta.partition_columns:
        typer.echo(f"  Partition columns: {', '.join(meta.partition_columns)}")
    typer.echo(f"  Schema: {meta.schema_string}")


@app.command()
def files(
    ctx: typer.Context,
    table: str = typer.Argument(help="Table as SHARE.SCHEMA.TABLE."),
    predicate: list[str] | None = typer.Option(
        None,
        "--predicate",
        help="Predicate hint for the server; may be given more than once.",
    ),
    limit: int = typer.Option(
        0, "--limit", help="Row-count hint for the server; 0 means no limit."
    ),
    at_version: int | None = typer.Option(
        None, "--at-version", help="Query this table version instead of the latest."
    ),
    urls: bool = typer.Option(
        False, "--urls", help="Print one presigned URL per line instead of a table."
    ),
) -> None:
    """List the data files of a table."""
    client = load_client(ctx)
    with report_errors():
        result = client.list_files_in_table(
            Table.parse(table),
            predicate_hints=predicate or (),
            limit_hint=limit,
            version=at_version,
        )

    if urls:
        for data_file in result.files:
            typer.echo(data_file.url)
        return

    if not result.files:
        typer.echo("No files found.")
        return

    listing = RichTable(title=f"Files of {table}")
    listing.add_column("ID")
    listing.add_column("Size", justify="right")
    listing.add_column("Partition values")
    for data_file in result.files:
        partitions = ", ".join(
            f"{k}={v}" for k, v in sorted(data_file.partition_values.items())
        )
        listing.add_row(data_file.id, format_size(data_file.size), partitions)
    Console().print(listing)
    typer.echo(f"{len(result.files)} file(s)")
