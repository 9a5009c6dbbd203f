"""Core domain models for deltasharing.

These models are pure Python dataclasses with no I/O dependencies. They
mirror the values of the Delta Sharing protocol: credential profiles, the
share/schema/table hierarchy, and the actions found in a table query
response. Wire values convert with ``from_json`` / ``to_json`` using the
protocol's camelCase keys.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, Self, TypeVar

from deltasharing.core.exceptions import InvalidArgumentError


T = TypeVar("T")


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _put_optional(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


@dataclass(frozen=True, slots=True)
class Profile:
    """Credentials for one sharing server, loaded from a profile file.

    Attributes:
        endpoint: Base URL of the sharing server, without trailing slash.
        bearer_token: Token sent as ``Authorization: Bearer <token>``.
        share_credentials_version: Version of the profile file format.
        expiration_time: Optional ISO-8601 expiry of the token.

    Example:
        >>> profile = Profile(
        ...     endpoint="https://example.org/delta-sharing/",
        ...     bearer_token="secret",
        ... )
        >>> profile.endpoint
        'https://example.org/delta-sharing'
    """

    endpoint: str
    bearer_token: str
    share_credentials_version: int = 1
    expiration_time: str | None = None

    def __post_init__(self) -> None:
        """Validate fields and normalize the endpoint."""
        if not isinstance(self.endpoint, str) or not self.endpoint:
            raise InvalidArgumentError("Profile endpoint must be a non-empty string")
        if not isinstance(self.bearer_token, str) or not self.bearer_token:
            raise InvalidArgumentError("Profile bearer token must be a non-empty string")
        if self.expiration_time is not None:
            try:
                self._expires_at()
            except (TypeError, ValueError) as e:
                raise InvalidArgumentError(
                    f"Profile expiration time is not ISO-8601: {self.expiration_time!r}",
                    cause=e,
                ) from e
        # frozen: bypass __setattr__ to normalize once
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build a Profile from the profile file's JSON object."""
        return cls(
            endpoint=data["endpoint"],
            bearer_token=data["bearerToken"],
            share_credentials_version=int(data.get("shareCredentialsVersion", 1)),
            expiration_time=data.get("expirationTime"),
        )

    def _expires_at(self) -> datetime:
        expires = datetime.fromisoformat(self.expiration_time)
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        return expires

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token's expiration time has passed."""
        if self.expiration_time is None:
            return False
        return (now or datetime.now(UTC)) >= self._expires_at()


@dataclass(frozen=True, slots=True)
class Share:
    """A named collection of schemas exposed to a recipient."""

    name: str
    id: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from a ``{"name", "id"}`` object."""
        return cls(name=data["name"], id=data.get("id"))

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        data: dict[str, Any] = {"name": self.name}
        _put_optional(data, "id", self.id)
        return data


@dataclass(frozen=True, slots=True)
class Schema:
    """A namespace of tables within a share."""

    name: str
    share: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from a ``{"name", "share"}`` object."""
        return cls(name=data["name"], share=data["share"])

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        return {"name": self.name, "share": self.share}


@dataclass(frozen=True, slots=True)
class Table:
    """A named, versioned dataset within a schema.

    Attributes:
        name: Table name.
        share: Name of the share containing the table.
        schema: Name of the schema containing the table.
        share_id: Server-assigned share id, when reported.
        id: Server-assigned table id, when reported.
    """

    name: str
    share: str
    schema: str
    share_id: str | None = None
    id: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from a ``{"name", "share", "schema", ...}`` object."""
        return cls(
            name=data["name"],
            share=data["share"],
            schema=data["schema"],
            share_id=data.get("shareId"),
            id=data.get("id"),
        )

    @classmethod
    def parse(cls, coordinate: str) -> Self:
        """Parse a ``share.schema.table`` coordinate.

        Raises:
            InvalidArgumentError: If the coordinate does not have three
                non-empty dot-separated parts.
        """
        parts = [part.strip() for part in coordinate.split(".")]
        if len(parts) != 3 or not all(parts):
            raise InvalidArgumentError(
                f"Invalid table coordinate '{coordinate}', "
                "expected '<share>.<schema>.<table>'"
            )
        share, schema, name = parts
        return cls(name=name, share=share, schema=schema)

    @property
    def coordinate(self) -> str:
        """The ``share.schema.table`` form of this table."""
        return f"{self.share}.{self.schema}.{self.name}"

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        data: dict[str, Any] = {
            "name": self.name,
            "schema": self.schema,
            "share": self.share,
        }
        _put_optional(data, "shareId", self.share_id)
        _put_optional(data, "id", self.id)
        return data


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of a list endpoint.

    Attributes:
        items: Items in server order.
        next_page_token: Token for the following page, None on the last page.
    """

    items: tuple[T, ...] = ()
    next_page_token: str | None = None

    @property
    def has_next(self) -> bool:
        """True when the server reported another page."""
        return bool(self.next_page_token)


@dataclass(frozen=True, slots=True)
class Protocol:
    """Minimum reader version a client must implement to read the table."""

    min_reader_version: int

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from the payload of a ``protocol`` action."""
        return cls(min_reader_version=int(data["minReaderVersion"]))

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape (including the action key)."""
        return {"protocol": {"minReaderVersion": self.min_reader_version}}


@dataclass(frozen=True, slots=True)
class Format:
    """Storage format of the table's data files."""

    provider: str = "parquet"
    options: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from a ``{"provider", "options"}`` object."""
        return cls(
            provider=data.get("provider", "parquet"),
            options=dict(data.get("options") or {}),
        )

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        data: dict[str, Any] = {"provider": self.provider}
        if self.options:
            data["options"] = dict(self.options)
        return data


@dataclass(frozen=True, slots=True)
class Metadata:
    """Table metadata.

    ``schema_string`` is the table's serialized logical schema; it is opaque
    to this library and handed to readers as-is.
    """

    id: str
    format: Format = field(default_factory=Format)
    schema_string: str = ""
    partition_columns: tuple[str, ...] = ()
    name: str | None = None
    description: str | None = None
    configuration: dict[str, str] = field(default_factory=dict)
    version: int | None = None
    size: int | None = None
    num_files: int | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from the payload of a ``metaData`` action."""
        return cls(
            id=data["id"],
            format=Format.from_json(data.get("format") or {}),
            schema_string=data.get("schemaString", ""),
            partition_columns=tuple(data.get("partitionColumns") or ()),
            name=data.get("name"),
            description=data.get("description"),
            configuration=dict(data.get("configuration") or {}),
            version=_optional_int(data.get("version")),
            size=_optional_int(data.get("size")),
            num_files=_optional_int(data.get("numFiles")),
        )

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape (including the action key)."""
        payload: dict[str, Any] = {
            "id": self.id,
            "format": self.format.to_json(),
            "schemaString": self.schema_string,
            "partitionColumns": list(self.partition_columns),
        }
        _put_optional(payload, "name", self.name)
        _put_optional(payload, "description", self.description)
        if self.configuration:
            payload["configuration"] = dict(self.configuration)
        _put_optional(payload, "version", self.version)
        _put_optional(payload, "size", self.size)
        _put_optional(payload, "numFiles", self.num_files)
        return {"metaData": payload}


@dataclass(frozen=True, slots=True)
class _FileAction:
    """Fields shared by every action that points at a data file."""

    url: str
    id: str
    partition_values: dict[str, str] = field(default_factory=dict)
    size: int = 0
    version: int | None = None
    timestamp: int | None = None
    expiration_timestamp: int | None = None

    WIRE_KEY = ""

    @classmethod
    def _common_fields(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "url": data["url"],
            "id": data["id"],
            "partition_values": dict(data.get("partitionValues") or {}),
            "size": int(data.get("size", 0)),
            "version": _optional_int(data.get("version")),
            "timestamp": _optional_int(data.get("timestamp")),
            "expiration_timestamp": _optional_int(data.get("expirationTimestamp")),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from the payload of this action kind."""
        return cls(**cls._common_fields(data))

    def _payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "id": self.id,
            "partitionValues": dict(self.partition_values),
            "size": self.size,
        }
        _put_optional(payload, "version", self.version)
        _put_optional(payload, "timestamp", self.timestamp)
        _put_optional(payload, "expirationTimestamp", self.expiration_timestamp)
        return payload

    def to_json(self) -> dict[str, Any]:
        """Serialize to the wire shape (including the action key)."""
        return {self.WIRE_KEY: self._payload()}


@dataclass(frozen=True, slots=True)
class DataFile(_FileAction):
    """A data file of the table snapshot, from a ``file`` action.

    The ``url`` is usually presigned and short-lived; the server issues a
    fresh one per query. ``stats`` is an opaque JSON string.

    Example:
        >>> f = DataFile.from_json({"url": "https://store/f1.parquet", "id": "f1", "size": 1024})
        >>> f.size
        1024
    """

    stats: str | None = None

    WIRE_KEY = "file"

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from the payload of a ``file`` action."""
        return cls(**cls._common_fields(data), stats=data.get("stats"))

    def _payload(self) -> dict[str, Any]:
        payload = _FileAction._payload(self)
        _put_optional(payload, "stats", self.stats)
        return payload


@dataclass(frozen=True, slots=True)
class AddFile(_FileAction):
    """A file added by a table version, from an ``add`` change-feed action."""

    stats: str | None = None

    WIRE_KEY = "add"

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Self:
        """Build from the payload of an ``add`` action."""
        return cls(**cls._common_fields(data), stats=data.get("stats"))

    def _payload(self) -> dict[str, Any]:
        payload = _FileAction._payload(self)
        _put_optional(payload, "stats", self.stats)
        return payload


@dataclass(frozen=True, slots=True)
class CdcFile(_FileAction):
    """A change-data file, from a ``cdf`` change-feed action."""

    WIRE_KEY = "cdf"


@dataclass(frozen=True, slots=True)
class RemoveFile(_FileAction):
    """A file removed by a table version, from a ``remove`` action."""

    WIRE_KEY = "remove"


Action = Protocol | Metadata | DataFile | AddFile | CdcFile | RemoveFile


@dataclass(frozen=True, slots=True)
class TableMetadata:
    """Protocol and metadata of a table, as returned by the metadata endpoint."""

    protocol: Protocol
    metadata: Metadata


@dataclass(frozen=True, slots=True)
class TableQueryResult:
    """A point-in-time listing of a table's data files.

    ``files`` keeps the server's order. The change-feed sequences are only
    populated by change queries.
    """

    protocol: Protocol
    metadata: Metadata
    files: tuple[DataFile, ...] = ()
    add_files: tuple[AddFile, ...] = ()
    cdc_files: tuple[CdcFile, ...] = ()
    remove_files: tuple[RemoveFile, ...] = ()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Result of a cache-backed fetch.

    Attributes:
        key: Cache key derived from the URL's host and path.
        data: The file's bytes.
        hit: True if served from the local store without a download.
    """

    key: str
    data: bytes
    hit: bool
