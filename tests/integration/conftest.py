"""Shared fixtures for integration tests."""

from __future__ import annotations

import json

import pytest
import responses


STORE = "https://store.example.com/orders"


def _ndjson(*objs: object) -> str:
    return "".join(json.dumps(obj) + "\n" for obj in objs)


@pytest.fixture
def share_files() -> dict[str, bytes]:
    """Content of the shared table's data files, by file id."""
    return {"f1": b"PAR1-first-file", "f2": b"PAR1-second-file"}


@pytest.fixture
def sharing_server(endpoint: str, share_files: dict[str, bytes]):
    """A mocked sharing server with one share, one table and two files."""
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{endpoint}/shares",
            body=_ndjson({"items": [{"name": "sales"}]}),
        )
        rsps.add(
            responses.GET,
            f"{endpoint}/shares/sales/all-tables",
            body=_ndjson(
                {"items": [{"name": "orders", "schema": "default", "share": "sales"}]}
            ),
        )
        table_path = f"{endpoint}/shares/sales/schemas/default/tables/orders"
        rsps.add(responses.HEAD, table_path, headers={"Delta-Table-Version": "7"})
        # First query attempt hits a transient failure
        rsps.add(responses.POST, f"{table_path}/query", status=503)
        rsps.add(
            responses.POST,
            f"{table_path}/query",
            body=_ndjson(
                {"protocol": {"minReaderVersion": 1}},
                {"metaData": {"id": "m1", "format": {"provider": "parquet"}}},
                *(
                    {
                        "file": {
                            "url": f"{STORE}/{file_id}.parquet?sig=1",
                            "id": file_id,
                            "partitionValues": {},
                            "size": len(data),
                        }
                    }
                    for file_id, data in share_files.items()
                ),
            ),
        )
        for file_id, data in share_files.items():
            rsps.add(
                responses.GET,
                f"{STORE}/{file_id}.parquet",
                body=data,
            )
        yield rsps
