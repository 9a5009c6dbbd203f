"""Core domain services for deltasharing."""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from deltasharing.core.actions import (
    decode_page,
    decode_table_metadata,
    decode_table_query,
)
from deltasharing.core.cancellation import CancellationToken
from deltasharing.core.exceptions import (
    DeltaSharingError,
    InvalidArgumentError,
    ProtocolViolationError,
)
from deltasharing.core.models import (
    Page,
    Profile,
    Schema,
    Share,
    Table,
    TableMetadata,
    TableQueryResult,
)
from deltasharing.core.ports import TransportPort
from deltasharing.core.retry import RetryPolicy


logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_VERSION_HEADER = "Delta-Table-Version"


def _segment(value: str, what: str) -> str:
    """Trim a path segment, rejecting empty names."""
    segment = value.strip()
    if not segment:
        raise InvalidArgumentError(f"{what} name cannot be empty")
    return segment


def _schemas_path(share: str) -> str:
    return f"/shares/{_segment(share, 'Share')}/schemas"


def _tables_path(share: str, schema: str) -> str:
    return f"{_schemas_path(share)}/{_segment(schema, 'Schema')}/tables"


def _table_path(table: Table) -> str:
    return f"{_tables_path(table.share, table.schema)}/{_segment(table.name, 'Table')}"


class SharingClient:
    """Client for the Delta Sharing REST protocol.

    Lists shares, schemas and tables, and reads table versions, metadata and
    file listings. The client holds nothing but its transport, so one
    instance can serve concurrent callers.

    Every operation accepts an optional ``cancel`` token. Errors are raised
    as DeltaSharingError subclasses tagged with the operation name and the
    endpoint path.
    """

    def __init__(self, transport: TransportPort) -> None:
        self._transport = transport

    @classmethod
    def from_profile(
        cls,
        profile: Profile | Path | str,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
    ) -> "SharingClient":
        """Create a SharingClient with the default HTTP transport.

        Args:
            profile: A Profile, or the path of a profile file.
            retry: Optional retry policy (defaults to RetryPolicy()).
            timeout: Per-request timeout in seconds.

        Returns:
            SharingClient backed by HttpTransport.
        """
        from deltasharing.adapters.http import HttpTransport
        from deltasharing.config import load_profile

        if not isinstance(profile, Profile):
            profile = load_profile(profile)
        return cls(HttpTransport(profile, retry=retry, timeout=timeout))

    @property
    def transport(self) -> TransportPort:
        """The transport this client talks through."""
        return self._transport

    @contextmanager
    def _operation(self, name: str, build_path: Callable[[], str]) -> Iterator[str]:
        """Resolve the endpoint path and tag escaping errors with name and path."""
        try:
            path = build_path()
        except DeltaSharingError as e:
            e.with_context(name)
            raise
        logger.debug("%s %s", name, path)
        try:
            yield path
        except DeltaSharingError as e:
            e.with_context(name, path)
            raise

    def list_shares(
        self,
        max_results: int | None = None,
        page_token: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Page[Share]:
        """List one page of shares.

        Args:
            max_results: Optional page size hint.
            page_token: Token from a previous page's next_page_token.
            cancel: Optional cancellation token.

        Returns:
            Page of shares; next_page_token is set when more pages exist.
        """
        with self._operation("list_shares", lambda: "/shares") as path:
            records = self._transport.get_with_retry(
                path, max_results, page_token, cancel=cancel
            )
            return decode_page(records, Share.from_json)

    def list_schemas(
        self,
        share: Share,
        max_results: int | None = None,
        page_token: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Page[Schema]:
        """List one page of schemas in a share."""
        with self._operation("list_schemas", lambda: _schemas_path(share.name)) as path:
            records = self._transport.get_with_retry(
                path, max_results, page_token, cancel=cancel
            )
            return decode_page(records, Schema.from_json)

    def list_tables(
        self,
        schema: Schema,
        max_results: int | None = None,
        page_token: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Page[Table]:
        """List one page of tables in a schema."""
        with self._operation(
            "list_tables", lambda: _tables_path(schema.share, schema.name)
        ) as path:
            records = self._transport.get_with_retry(
                path, max_results, page_token, cancel=cancel
            )
            return decode_page(records, Table.from_json)

    def list_all_tables_in_share(
        self,
        share: Share,
        max_results: int | None = None,
        page_token: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Page[Table]:
        """List one page of tables across all schemas of a share."""
        with self._operation(
            "list_all_tables", lambda: f"/shares/{_segment(share.name, 'Share')}/all-tables"
        ) as path:
            records = self._transport.get_with_retry(
                path, max_results, page_token, cancel=cancel
            )
            return decode_page(records, Table.from_json)

    @staticmethod
    def _paginate(fetch_page: Callable[[str | None], Page[T]]) -> Iterator[T]:
        """Yield items from consecutive pages until no token is returned."""
        token: str | None = None
        while True:
            page = fetch_page(token)
            yield from page.items
            if not page.has_next:
                return
            if page.next_page_token == token:
                raise ProtocolViolationError(
                    f"Server repeated page token '{token}'"
                )
            token = page.next_page_token

    def iter_shares(
        self,
        max_results: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Share]:
        """Iterate over all shares, following page tokens."""
        return self._paginate(
            lambda token: self.list_shares(max_results, token, cancel=cancel)
        )

    def iter_schemas(
        self,
        share: Share,
        max_results: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Schema]:
        """Iterate over all schemas in a share, following page tokens."""
        return self._paginate(
            lambda token: self.list_schemas(share, max_results, token, cancel=cancel)
        )

    def iter_tables(
        self,
        schema: Schema,
        max_results: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Table]:
        """Iterate over all tables in a schema, following page tokens."""
        return self._paginate(
            lambda token: self.list_tables(schema, max_results, token, cancel=cancel)
        )

    def iter_all_tables(
        self,
        share: Share,
        max_results: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Iterator[Table]:
        """Iterate over all tables in a share, following page tokens."""
        return self._paginate(
            lambda token: self.list_all_tables_in_share(
                share, max_results, token, cancel=cancel
            )
        )

    def list_all_tables(
        self, *, cancel: CancellationToken | None = None
    ) -> list[Table]:
        """List every table of every share visible to the recipient.

        Shares are listed first (all pages), then each share's tables, and
        the results are concatenated in share order. The first failure
        aborts the whole listing.
        """
        shares = list(self.iter_shares(cancel=cancel))
        tables: list[Table] = []
        for share in shares:
            tables.extend(self.iter_all_tables(share, cancel=cancel))
        return tables

    def get_table_version(
        self, table: Table, *, cancel: CancellationToken | None = None
    ) -> int:
        """Return the table's current version.

        Raises:
            ProtocolViolationError: If the response lacks a numeric
                Delta-Table-Version header.
        """
        with self._operation("get_table_version", lambda: _table_path(table)) as path:
            headers = self._transport.head(path, cancel=cancel)
            value = headers.get(TABLE_VERSION_HEADER)
            if value is None:
                raise ProtocolViolationError(
                    f"Response has no {TABLE_VERSION_HEADER} header", path=path
                )
            try:
                version = int(value.strip())
            except ValueError:
                raise ProtocolViolationError(
                    f"{TABLE_VERSION_HEADER} header is not an integer: '{value}'",
                    path=path,
                ) from None
            if version < 0:
                raise ProtocolViolationError(
                    f"{TABLE_VERSION_HEADER} header is negative: {version}", path=path
                )
            return version

    def get_table_metadata(
        self, table: Table, *, cancel: CancellationToken | None = None
    ) -> TableMetadata:
        """Return the table's protocol and metadata.

        Raises:
            ProtocolViolationError: If the response has fewer than two records.
            MalformedResponseError: If a record has the wrong shape.
            UnsupportedProtocolError: If the table needs a newer reader.
        """
        with self._operation(
            "get_table_metadata", lambda: f"{_table_path(table)}/metadata"
        ) as path:
            records = self._transport.get(path, cancel=cancel)
            protocol, metadata = decode_table_metadata(records)
            return TableMetadata(protocol=protocol, metadata=metadata)

    def list_files_in_table(
        self,
        table: Table,
        predicate_hints: Sequence[str] = (),
        limit_hint: int = 0,
        version: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> TableQueryResult:
        """List the data files of a table snapshot.

        By default the listing is full and unfiltered. Predicate and limit
        hints are forwarded to the server untouched; the server may ignore
        them and this client never evaluates them.

        Args:
            table: Table to query.
            predicate_hints: Optional SQL-like filter hints for the server.
            limit_hint: Row-count hint for the server; 0 means no limit.
            version: Optional table version to query instead of the latest.
            cancel: Optional cancellation token.

        Returns:
            TableQueryResult with files in server order.

        Raises:
            ProtocolViolationError: If the response has fewer than two records.
            MalformedResponseError: If a record has the wrong shape.
            UnsupportedProtocolError: If the table needs a newer reader.
        """
        with self._operation(
            "list_files_in_table", lambda: f"{_table_path(table)}/query"
        ) as path:
            records = self._transport.post_query(
                path, predicate_hints, limit_hint, version=version, cancel=cancel
            )
            return decode_table_query(records)

    def list_table_changes(
        self,
        table: Table,
        starting_version: int | None = None,
        ending_version: int | None = None,
        starting_timestamp: str | None = None,
        ending_timestamp: str | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> TableQueryResult:
        """List the change-data-feed actions of a table.

        The result's add_files, cdc_files and remove_files hold the change
        actions in server order.

        Raises:
            InvalidArgumentError: If neither a starting version nor a
                starting timestamp is given.
        """
        if starting_version is None and starting_timestamp is None:
            raise InvalidArgumentError(
                "list_table_changes needs starting_version or starting_timestamp"
            )
        params: dict[str, str | int] = {}
        if starting_version is not None:
            params["startingVersion"] = starting_version
        if ending_version is not None:
            params["endingVersion"] = ending_version
        if starting_timestamp is not None:
            params["startingTimestamp"] = starting_timestamp
        if ending_timestamp is not None:
            params["endingTimestamp"] = ending_timestamp

        with self._operation(
            "list_table_changes", lambda: f"{_table_path(table)}/changes"
        ) as path:
            records = self._transport.get_with_retry(path, params=params, cancel=cancel)
            return decode_table_query(records)
