"""CLI for deltasharing."""

# Import commands to register them with the app
# These imports have side effects (registering commands with @app.command())
from deltasharing.cli.commands import cache as _cache_module  # noqa: F401
from deltasharing.cli.commands import fetch as _fetch_module  # noqa: F401
from deltasharing.cli.commands import listing as _listing_module  # noqa: F401
from deltasharing.cli.commands import table as _table_module  # noqa: F401
from deltasharing.cli.main import app, main


__all__ = ["app", "main"]
