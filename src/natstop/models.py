"""Data models for natstop."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from natstop.exceptions import MalformedResponse, NatsTopError


class SortKey(Enum):
    """Sort keys for the connection table."""

    CID = "cid"
    SUBS = "subs"
    PENDING = "pending"
    MSGS_TO = "msgs_to"
    MSGS_FROM = "msgs_from"
    BYTES_TO = "bytes_to"
    BYTES_FROM = "bytes_from"

    @classmethod
    def parse(cls, text: str) -> "SortKey":
        """Return the sort key named by text, raising ValueError if unknown."""
        return cls(text)

    @classmethod
    def names(cls) -> list[str]:
        """Get the accepted sort key names."""
        return [key.value for key in cls]


class ViewMode(Enum):
    """Dashboard layouts."""

    COMPACT = "compact"
    GRAPHICAL = "graphical"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_int(data: dict[str, Any], field: str) -> int:
    value = data.get(field)
    if not _is_number(value):
        raise MalformedResponse(f"field {field!r} missing or not a number: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedResponse(f"field {field!r} is not finite: {value!r}")
    return int(value)


def _optional_int(data: dict[str, Any], field: str) -> int:
    value = data.get(field)
    if not _is_number(value):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        raise MalformedResponse(f"field {field!r} is not finite: {value!r}")
    return int(value)


def _optional_str(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    return value if isinstance(value, str) else ""


@dataclass(slots=True, frozen=True)
class Counters:
    """Cumulative message and byte counters of a server."""

    in_msgs: int = 0
    out_msgs: int = 0
    in_bytes: int = 0
    out_bytes: int = 0


@dataclass(slots=True, frozen=True)
class ServerStats:
    """Immutable capture of the /varz endpoint."""

    cpu_percent: float
    mem_bytes: int
    max_connections: int
    in_msgs: int
    out_msgs: int
    in_bytes: int
    out_bytes: int
    server_id: str = ""
    version: str = ""
    uptime: str = ""
    connections: int = 0
    total_connections: int = 0
    slow_consumers: int = 0
    subscriptions: int = 0

    @property
    def counters(self) -> Counters:
        """Get the cumulative counters of this capture."""
        return Counters(
            in_msgs=self.in_msgs,
            out_msgs=self.out_msgs,
            in_bytes=self.in_bytes,
            out_bytes=self.out_bytes,
        )

    @classmethod
    def from_varz(cls, data: Any) -> "ServerStats":
        """
        Decode a /varz JSON object.

        Older servers report max_connections under "options", newer ones at
        the top level; both are accepted.

        Raises:
            MalformedResponse: If data is not an object or lacks a counter.
        """
        if not isinstance(data, dict):
            raise MalformedResponse(f"expected a JSON object for varz, got {type(data).__name__}")

        cpu = data.get("cpu", 0.0)
        if not _is_number(cpu) or (isinstance(cpu, float) and not math.isfinite(cpu)):
            raise MalformedResponse(f"field 'cpu' is not a number: {cpu!r}")

        max_connections = _optional_int(data, "max_connections")
        options = data.get("options")
        if not max_connections and isinstance(options, dict):
            max_connections = _optional_int(options, "max_connections")

        return cls(
            cpu_percent=float(cpu),
            mem_bytes=_require_int(data, "mem"),
            max_connections=max_connections,
            in_msgs=_require_int(data, "in_msgs"),
            out_msgs=_require_int(data, "out_msgs"),
            in_bytes=_require_int(data, "in_bytes"),
            out_bytes=_require_int(data, "out_bytes"),
            server_id=_optional_str(data, "server_id"),
            version=_optional_str(data, "version"),
            uptime=_optional_str(data, "uptime"),
            connections=_optional_int(data, "connections"),
            total_connections=_optional_int(data, "total_connections"),
            slow_consumers=_optional_int(data, "slow_consumers"),
            subscriptions=_optional_int(data, "subscriptions"),
        )


@dataclass(slots=True, frozen=True)
class ConnectionInfo:
    """Immutable capture of one client connection."""

    cid: int
    ip: str
    port: int
    subscriptions: int
    pending_bytes: int
    out_msgs: int
    in_msgs: int
    out_bytes: int
    in_bytes: int
    lang: str = ""
    version: str = ""
    name: str = ""

    @property
    def host(self) -> str:
        """Get the remote address as host:port."""
        return f"{self.ip}:{self.port}"

    @classmethod
    def from_connz(cls, data: Any) -> "ConnectionInfo":
        """Decode one entry of the /connz connection list."""
        if not isinstance(data, dict):
            raise MalformedResponse(f"expected a JSON object for a connection, got {type(data).__name__}")
        return cls(
            cid=_require_int(data, "cid"),
            ip=_optional_str(data, "ip"),
            port=_optional_int(data, "port"),
            subscriptions=_optional_int(data, "subscriptions"),
            pending_bytes=_optional_int(data, "pending_bytes"),
            out_msgs=_optional_int(data, "out_msgs"),
            in_msgs=_optional_int(data, "in_msgs"),
            out_bytes=_optional_int(data, "out_bytes"),
            in_bytes=_optional_int(data, "in_bytes"),
            lang=_optional_str(data, "lang"),
            version=_optional_str(data, "version"),
            name=_optional_str(data, "name"),
        )


@dataclass(slots=True, frozen=True)
class ConnectionList:
    """Immutable capture of the /connz endpoint."""

    num_connections: int
    connections: tuple[ConnectionInfo, ...] = ()

    @classmethod
    def from_connz(cls, data: Any) -> "ConnectionList":
        """
        Decode a /connz JSON object.

        A null connection list means the server has no clients.

        Raises:
            MalformedResponse: If data is not an object or an entry is invalid.
        """
        if not isinstance(data, dict):
            raise MalformedResponse(f"expected a JSON object for connz, got {type(data).__name__}")
        entries = data.get("connections") or []
        if not isinstance(entries, list):
            raise MalformedResponse(f"field 'connections' is not a list: {entries!r}")
        return cls(
            num_connections=_require_int(data, "num_connections"),
            connections=tuple(ConnectionInfo.from_connz(entry) for entry in entries),
        )


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Paired capture of server-wide and per-connection counters."""

    stats: ServerStats
    connections: ConnectionList
    captured_at: float


@dataclass(slots=True, frozen=True)
class RateSample:
    """Per-second throughput between two snapshots."""

    in_msgs_per_sec: float = 0.0
    out_msgs_per_sec: float = 0.0
    in_bytes_per_sec: float = 0.0
    out_bytes_per_sec: float = 0.0

    @classmethod
    def zero(cls) -> "RateSample":
        """Get the sample reported when no rate can be computed."""
        return cls()


@dataclass(slots=True, frozen=True)
class Sample:
    """Snapshot and rates published by one poll cycle."""

    snapshot: Snapshot
    rates: RateSample
    sequence: int


@dataclass(slots=True, frozen=True)
class PollFailure:
    """Published in place of a sample when polling fails for good."""

    error: NatsTopError
