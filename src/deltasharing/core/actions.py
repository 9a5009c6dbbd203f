"""Decoding of the sharing server's NDJSON responses.

A table query response is a sequence of JSON lines: a ``protocol`` action,
a ``metaData`` action, then zero or more file actions. Each line holds
exactly one action, identified by its single top-level key. List endpoints
answer with a single ``{"items": [...], "nextPageToken": ...}`` line.

Everything here is pure: no I/O, no retries. Two failure kinds are kept
apart so callers can tell "server sent nothing" from "server sent garbage":

* ProtocolViolationError: too few records for the response kind.
* MalformedResponseError: a record is not JSON or not the expected shape.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from deltasharing.core.exceptions import (
    MalformedResponseError,
    ProtocolViolationError,
    UnsupportedProtocolError,
)
from deltasharing.core.models import (
    Action,
    AddFile,
    CdcFile,
    DataFile,
    Metadata,
    Page,
    Protocol,
    RemoveFile,
    TableQueryResult,
)


T = TypeVar("T")

SUPPORTED_READER_VERSION = 1

_ACTION_TYPES: dict[str, Callable[[Mapping[str, Any]], Action]] = {
    "protocol": Protocol.from_json,
    "metaData": Metadata.from_json,
    "file": DataFile.from_json,
    "add": AddFile.from_json,
    "cdf": CdcFile.from_json,
    "remove": RemoveFile.from_json,
}


def _load_object(record: bytes | str) -> dict[str, Any]:
    try:
        value = json.loads(record)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponseError(f"Invalid JSON record: {e}", cause=e) from e
    if not isinstance(value, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(value).__name__}"
        )
    return value


def decode_action(record: bytes | str) -> Action:
    """Decode one NDJSON record into a typed action.

    The action kind is found by probing which known key the object carries.

    Raises:
        MalformedResponseError: If the record is not a JSON object holding
            exactly one known action with a well-formed payload.
    """
    obj = _load_object(record)
    kinds = [key for key in obj if key in _ACTION_TYPES]
    if len(kinds) != 1:
        found = ", ".join(sorted(obj)) or "nothing"
        raise MalformedResponseError(
            f"Expected exactly one action key, found: {found}"
        )
    kind = kinds[0]
    payload = obj[kind]
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Action '{kind}' payload is not an object")
    try:
        return _ACTION_TYPES[kind](payload)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid '{kind}' action: {e!r}", cause=e) from e


def check_reader_version(protocol: Protocol) -> None:
    """Reject tables that need a newer reader than this client.

    Raises:
        UnsupportedProtocolError: If min_reader_version is too high.
    """
    if protocol.min_reader_version > SUPPORTED_READER_VERSION:
        raise UnsupportedProtocolError(
            protocol.min_reader_version, SUPPORTED_READER_VERSION
        )


def decode_page(
    records: Sequence[bytes],
    item_type: Callable[[Mapping[str, Any]], T],
) -> Page[T]:
    """Decode a list-endpoint response into a Page.

    Args:
        records: NDJSON records of the response (empty lines removed).
        item_type: Factory building one item from its JSON object, e.g.
            ``Share.from_json``.

    Raises:
        ProtocolViolationError: If the response has no records.
        MalformedResponseError: If the page envelope or an item is malformed.
    """
    if len(records) < 1:
        raise ProtocolViolationError("List response is empty")

    envelope = _load_object(records[0])
    raw_items = envelope.get("items") or []
    if not isinstance(raw_items, list):
        raise MalformedResponseError("Page 'items' is not a list")

    token = envelope.get("nextPageToken")
    if token is not None and not isinstance(token, str):
        raise MalformedResponseError("Page 'nextPageToken' is not a string")

    try:
        items = tuple(item_type(item) for item in raw_items)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid page item: {e!r}", cause=e) from e

    return Page(items=items, next_page_token=token or None)


def _decode_preamble(records: Sequence[bytes]) -> tuple[Protocol, Metadata]:
    if len(records) < 2:
        raise ProtocolViolationError(
            f"Expected protocol and metadata records, got {len(records)} record(s)"
        )

    protocol = decode_action(records[0])
    if not isinstance(protocol, Protocol):
        raise MalformedResponseError(
            f"First record must be a protocol action, got {type(protocol).__name__}"
        )
    metadata = decode_action(records[1])
    if not isinstance(metadata, Metadata):
        raise MalformedResponseError(
            f"Second record must be a metaData action, got {type(metadata).__name__}"
        )

    check_reader_version(protocol)
    return protocol, metadata


def decode_table_metadata(records: Sequence[bytes]) -> tuple[Protocol, Metadata]:
    """Decode a metadata response (protocol line, metaData line).

    Records after the second are ignored.

    Raises:
        ProtocolViolationError: If fewer than two records are present.
        MalformedResponseError: If either record has the wrong shape.
        UnsupportedProtocolError: If the table needs a newer reader.
    """
    return _decode_preamble(records)


def decode_table_query(records: Sequence[bytes]) -> TableQueryResult:
    """Decode a query or changes response into a TableQueryResult.

    The first two records are the protocol and metadata; every following
    non-empty record must be a file action and is routed by kind, keeping
    server order within each kind.

    Raises:
        ProtocolViolationError: If fewer than two records are present.
        MalformedResponseError: If any record has the wrong shape, or a
            protocol/metadata action appears among the file actions.
        UnsupportedProtocolError: If the table needs a newer reader.
    """
    protocol, metadata = _decode_preamble(records)

    files: list[DataFile] = []
    add_files: list[AddFile] = []
    cdc_files: list[CdcFile] = []
    remove_files: list[RemoveFile] = []

    for line_no, record in enumerate(records[2:], start=3):
        if not record.strip():
            continue
        action = decode_action(record)
        if isinstance(action, DataFile):
            files.append(action)
        elif isinstance(action, AddFile):
            add_files.append(action)
        elif isinstance(action, CdcFile):
            cdc_files.append(action)
        elif isinstance(action, RemoveFile):
            remove_files.append(action)
        else:
            raise MalformedResponseError(
                f"Unexpected {type(action).__name__} action on line {line_no}"
            )

    return TableQueryResult(
        protocol=protocol,
        metadata=metadata,
        files=tuple(files),
        add_files=tuple(add_files),
        cdc_files=tuple(cdc_files),
        remove_files=tuple(remove_files),
    )
