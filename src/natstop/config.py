"""Runtime configuration for natstop."""

import math
from dataclasses import dataclass

from natstop.exceptions import InvalidConfiguration
from natstop.models import SortKey, ViewMode

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8333
DEFAULT_CONN_LIMIT = 1024
DEFAULT_INTERVAL = 1.0
MAX_MONITORING_RETRIES = 5
RETRY_WAIT = 1.0
HISTORY_SIZE = 150

UI_STYLES: dict[str, ViewMode] = {
    "simple": ViewMode.COMPACT,
    "dashboard": ViewMode.GRAPHICAL,
    "graphs": ViewMode.GRAPHICAL,
}


@dataclass(slots=True, frozen=True)
class Config:
    """Validated, immutable options shared by the poll loop and dashboard."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    conn_limit: int = DEFAULT_CONN_LIMIT
    interval: float = DEFAULT_INTERVAL
    sort_key: SortKey = SortKey.CID
    view_mode: ViewMode = ViewMode.COMPACT
    request_timeout: float = 5.0
    max_retries: int = MAX_MONITORING_RETRIES
    retry_wait: float = RETRY_WAIT
    history_size: int = HISTORY_SIZE

    @property
    def base_url(self) -> str:
        """Get the monitoring base URL."""
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_options(
        cls,
        host: str = DEFAULT_HOST,
        port: int | str = DEFAULT_PORT,
        conn_limit: int | str = DEFAULT_CONN_LIMIT,
        interval: float | str = DEFAULT_INTERVAL,
        sort: str = SortKey.CID.value,
        ui: str = "simple",
        **extra: object,
    ) -> "Config":
        """
        Build a Config from raw command-line values.

        Args:
            host: Server host name or address.
            port: Monitoring port.
            conn_limit: Maximum number of connections requested per poll.
            interval: Seconds between polls.
            sort: Sort key name, one of SortKey's values.
            ui: UI style name, one of UI_STYLES.
            **extra: Remaining Config fields, passed through unchanged.

        Raises:
            InvalidConfiguration: If any value is out of range or unknown.
        """
        if not host:
            raise InvalidConfiguration("server host must not be empty")

        try:
            port = int(port)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"not a valid monitoring port: {port!r}") from None
        if not 0 < port < 65536:
            raise InvalidConfiguration(f"monitoring port out of range: {port}")

        try:
            conn_limit = int(conn_limit)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"not a valid number of connections: {conn_limit!r}") from None
        if conn_limit < 1:
            raise InvalidConfiguration(f"number of connections must be positive: {conn_limit}")

        try:
            interval = float(interval)
        except (TypeError, ValueError):
            raise InvalidConfiguration(
                f"could not use {interval!r} as a refreshing interval"
            ) from None
        if not math.isfinite(interval) or interval <= 0:
            raise InvalidConfiguration(f"refreshing interval must be a positive number: {interval}")

        try:
            sort_key = SortKey.parse(sort)
        except ValueError:
            raise InvalidConfiguration(f"not a valid option to sort by: {sort}") from None

        view_mode = UI_STYLES.get(ui)
        if view_mode is None:
            raise InvalidConfiguration(f"not a valid UI style: {ui}")

        try:
            return cls(
                host=host,
                port=port,
                conn_limit=conn_limit,
                interval=interval,
                sort_key=sort_key,
                view_mode=view_mode,
                **extra,
            )
        except TypeError as e:
            raise InvalidConfiguration(str(e)) from e
