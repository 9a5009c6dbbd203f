"""HTTP transport adapters."""

from deltasharing.adapters.http.transport import HttpTransport, split_records


__all__ = ["HttpTransport", "split_records"]
