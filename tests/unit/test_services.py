"""Unit tests for SharingClient against a mocked sharing server."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import responses


if TYPE_CHECKING:
    from deltasharing.adapters.http import HttpTransport
    from deltasharing.core.services import SharingClient


PROTOCOL = {"protocol": {"minReaderVersion": 1}}
METADATA = {
    "metaData": {
        "id": "m1",
        "format": {"provider": "parquet"},
        "schemaString": '{"type":"struct","fields":[]}',
        "partitionColumns": ["date"],
    }
}
TABLE_PATH = "/shares/sales/schemas/default/tables/orders"


def _ndjson(*objs: object) -> str:
    return "".join(json.dumps(obj) + "\n" for obj in objs)


def _file(file_id: str) -> dict[str, object]:
    return {
        "file": {
            "url": f"https://store.example.com/orders/{file_id}.parquet?sig=1",
            "id": file_id,
            "partitionValues": {"date": "2024-01-01"},
            "size": 1024,
        }
    }


@pytest.fixture
def client(transport: HttpTransport) -> SharingClient:
    """SharingClient over the no-wait transport."""
    from deltasharing.core.services import SharingClient

    return SharingClient(transport)


@pytest.fixture
def orders():
    """The sales.default.orders table."""
    from deltasharing.core.models import Table

    return Table.parse("sales.default.orders")


@pytest.mark.client
class TestListing:
    """Tests for share, schema and table listing."""

    @responses.activate
    def test_list_shares_returns_page(self, client: SharingClient, endpoint: str) -> None:
        """list_shares() should decode one page."""
        responses.add(
            responses.GET,
            f"{endpoint}/shares",
            body=_ndjson({"items": [{"name": "sales", "id": "s1"}], "nextPageToken": "t2"}),
        )

        page = client.list_shares(max_results=1)

        assert [s.name for s in page.items] == ["sales"]
        assert page.next_page_token == "t2"
        assert "maxResults=1" in responses.calls[0].request.url

    @responses.activate
    def test_list_schemas_uses_share_path(
        self, client: SharingClient, endpoint: str
    ) -> None:
        """list_schemas() should call the share's schemas endpoint."""
        from deltasharing.core.models import Share

        responses.add(
            responses.GET,
            f"{endpoint}/shares/sales/schemas",
            body=_ndjson({"items": [{"name": "default", "share": "sales"}]}),
        )

        page = client.list_schemas(Share(name="sales"))

        assert page.items[0].name == "default"
        assert not page.has_next

    @responses.activate
    def test_list_tables_trims_names(self, client: SharingClient, endpoint: str) -> None:
        """Surrounding whitespace in names should not reach the path."""
        from deltasharing.core.models import Schema

        responses.add(
            responses.GET,
            f"{endpoint}/shares/sales/schemas/default/tables",
            body=_ndjson(
                {"items": [{"name": "orders", "schema": "default", "share": "sales"}]}
            ),
        )

        page = client.list_tables(Schema(name=" default ", share="sales "))

        assert page.items[0].coordinate == "sales.default.orders"

    def test_empty_share_name_is_invalid(self, client: SharingClient) -> None:
        """An empty share name should fail before any request."""
        from deltasharing.core.exceptions import InvalidArgumentError
        from deltasharing.core.models import Share

        with pytest.raises(InvalidArgumentError) as exc_info:
            client.list_schemas(Share(name="  "))

        assert exc_info.value.operation == "list_schemas"

    @responses.activate
    def test_iter_shares_follows_tokens(
        self, client: SharingClient, endpoint: str
    ) -> None:
        """iter_shares() should request pages until no token is returned."""
        url = f"{endpoint}/shares"
        responses.add(
            responses.GET,
            url,
            body=_ndjson({"items": [{"name": "a"}], "nextPageToken": "t2"}),
        )
        responses.add(responses.GET, url, body=_ndjson({"items": [{"name": "b"}]}))

        names = [share.name for share in client.iter_shares()]

        assert names == ["a", "b"]
        assert "pageToken=t2" in responses.calls[1].request.url

    @responses.activate
    def test_repeated_page_token_is_protocol_violation(
        self, client: SharingClient, endpoint: str
    ) -> None:
        """A server returning the same token twice should not loop forever."""
        from deltasharing.core.exceptions import ProtocolViolationError

        responses.add(
            responses.GET,
            f"{endpoint}/shares",
            body=_ndjson({"items": [], "nextPageToken": "same"}),
        )

        with pytest.raises(ProtocolViolationError):
            list(client.iter_shares())

    @responses.activate
    def test_list_all_tables_concatenates_in_share_order(
        self, client: SharingClient, endpoint: str
    ) -> None:
        """list_all_tables() should list every share's tables in order."""
        responses.add(
            responses.GET,
            f"{endpoint}/shares",
            body=_ndjson({"items": [{"name": "s1"}, {"name": "s2"}]}),
        )
        for share, tables in (("s1", ["t1", "t2"]), ("s2", ["t3"])):
            responses.add(
                responses.GET,
                f"{endpoint}/shares/{share}/all-tables",
                body=_ndjson(
                    {
                        "items": [
                            {"name": t, "schema": "d", "share": share} for t in tables
                        ]
                    }
                ),
            )

        tables = client.list_all_tables()

        assert [t.coordinate for t in tables] == ["s1.d.t1", "s1.d.t2", "s2.d.t3"]

    @responses.activate
    def test_list_all_tables_fails_fast(
        self, client: SharingClient, endpoint: str
    ) -> None:
        """The first failing share should abort the whole listing."""
        from deltasharing.core.exceptions import HTTPStatusError

        responses.add(
            responses.GET,
            f"{endpoint}/shares",
            body=_ndjson({"items": [{"name": "s1"}, {"name": "s2"}]}),
        )
        responses.add(responses.GET, f"{endpoint}/shares/s1/all-tables", status=403)

        with pytest.raises(HTTPStatusError) as exc_info:
            client.list_all_tables()

        assert exc_info.value.operation == "list_all_tables"
        assert exc_info.value.path == "/shares/s1/all-tables"
        assert all("/s2/" not in call.request.url for call in responses.calls)


@pytest.mark.client
class TestTableVersion:
    """Tests for get_table_version()."""

    @responses.activate
    def test_reads_version_header(self, client: SharingClient, endpoint: str, orders) -> None:
        """The Delta-Table-Version header should be parsed as an integer."""
        responses.add(
            responses.HEAD, endpoint + TABLE_PATH, headers={"Delta-Table-Version": "42"}
        )

        assert client.get_table_version(orders) == 42

    @responses.activate
    @pytest.mark.parametrize(
        "headers",
        [{}, {"Delta-Table-Version": "abc"}, {"Delta-Table-Version": "-1"}],
    )
    def test_bad_header_is_protocol_violation(
        self, client: SharingClient, endpoint: str, orders, headers: dict[str, str]
    ) -> None:
        """A missing, non-numeric or negative header should be a violation."""
        from deltasharing.core.exceptions import ProtocolViolationError

        responses.add(responses.HEAD, endpoint + TABLE_PATH, headers=headers)

        with pytest.raises(ProtocolViolationError) as exc_info:
            client.get_table_version(orders)

        assert exc_info.value.operation == "get_table_version"


@pytest.mark.client
class TestTableMetadata:
    """Tests for get_table_metadata()."""

    @responses.activate
    def test_returns_protocol_and_metadata(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """The metadata endpoint should decode to TableMetadata."""
        responses.add(
            responses.GET,
            f"{endpoint}{TABLE_PATH}/metadata",
            body=_ndjson(PROTOCOL, METADATA),
        )

        result = client.get_table_metadata(orders)

        assert result.protocol.min_reader_version == 1
        assert result.metadata.partition_columns == ("date",)

    @responses.activate
    def test_errors_are_tagged_with_operation(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """A 404 should carry the operation name and endpoint path."""
        from deltasharing.core.exceptions import HTTPStatusError

        responses.add(responses.GET, f"{endpoint}{TABLE_PATH}/metadata", status=404)

        with pytest.raises(HTTPStatusError) as exc_info:
            client.get_table_metadata(orders)

        assert exc_info.value.operation == "get_table_metadata"
        assert exc_info.value.path == f"{TABLE_PATH}/metadata"
        assert len(responses.calls) == 1

    @responses.activate
    def test_unsupported_reader_version(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """A table needing a newer reader should be refused."""
        from deltasharing.core.exceptions import UnsupportedProtocolError

        responses.add(
            responses.GET,
            f"{endpoint}{TABLE_PATH}/metadata",
            body=_ndjson({"protocol": {"minReaderVersion": 2}}, METADATA),
        )

        with pytest.raises(UnsupportedProtocolError):
            client.get_table_metadata(orders)


@pytest.mark.client
class TestListFiles:
    """Tests for list_files_in_table()."""

    @responses.activate
    def test_returns_files_in_server_order(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """Files should come back in the order the server sent them."""
        responses.add(
            responses.POST,
            f"{endpoint}{TABLE_PATH}/query",
            body=_ndjson(PROTOCOL, METADATA, _file("f3"), _file("f1"), _file("f2")),
        )

        result = client.list_files_in_table(orders)

        assert [f.id for f in result.files] == ["f3", "f1", "f2"]
        assert json.loads(responses.calls[0].request.body) == {
            "predicateHints": [],
            "limitHint": 0,
        }

    @responses.activate
    def test_forwards_hints_and_version(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """Predicate hints, limit and version should reach the request body."""
        responses.add(
            responses.POST,
            f"{endpoint}{TABLE_PATH}/query",
            body=_ndjson(PROTOCOL, METADATA),
        )

        result = client.list_files_in_table(
            orders, predicate_hints=["date = '2024-01-01'"], limit_hint=100, version=7
        )

        assert result.files == ()
        assert json.loads(responses.calls[0].request.body) == {
            "predicateHints": ["date = '2024-01-01'"],
            "limitHint": 100,
            "version": 7,
        }

    @responses.activate
    def test_only_protocol_line_is_protocol_violation(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """A response with just the protocol line should be a violation."""
        from deltasharing.core.exceptions import ProtocolViolationError

        responses.add(
            responses.POST, f"{endpoint}{TABLE_PATH}/query", body=_ndjson(PROTOCOL)
        )

        with pytest.raises(ProtocolViolationError) as exc_info:
            client.list_files_in_table(orders)

        assert exc_info.value.operation == "list_files_in_table"


@pytest.mark.client
class TestTableChanges:
    """Tests for list_table_changes()."""

    def test_requires_a_starting_point(self, client: SharingClient, orders) -> None:
        """Calling without starting version or timestamp should be invalid."""
        from deltasharing.core.exceptions import InvalidArgumentError

        with pytest.raises(InvalidArgumentError):
            client.list_table_changes(orders)

    @responses.activate
    def test_returns_change_actions(
        self, client: SharingClient, endpoint: str, orders
    ) -> None:
        """Change actions should be decoded and the range sent as params."""
        payload = {
            "url": "https://store.example.com/orders/c.parquet",
            "id": "c",
            "version": 3,
        }
        responses.add(
            responses.GET,
            f"{endpoint}{TABLE_PATH}/changes",
            body=_ndjson(PROTOCOL, METADATA, {"add": payload}, {"cdf": payload}),
        )

        result = client.list_table_changes(orders, starting_version=2, ending_version=3)

        assert [a.id for a in result.add_files] == ["c"]
        assert len(result.cdc_files) == 1
        url = responses.calls[0].request.url
        assert "startingVersion=2" in url
        assert "endingVersion=3" in url


@pytest.mark.client
class TestFromProfile:
    """Tests for SharingClient.from_profile()."""

    def test_from_profile_file(self, profile_file, endpoint: str) -> None:
        """from_profile() should accept a profile file path."""
        from deltasharing.adapters.http import HttpTransport
        from deltasharing.core.services import SharingClient

        client = SharingClient.from_profile(profile_file)

        assert isinstance(client.transport, HttpTransport)
        assert client.transport.profile.endpoint == endpoint
