"""HTTP client for the NATS monitoring endpoints."""

import time
from collections.abc import Callable
from enum import Enum
from typing import Any

import requests

from natstop.config import Config
from natstop.exceptions import MalformedResponse, UnreachableServer
from natstop.logger import get_logger
from natstop.models import ConnectionList, ServerStats, SortKey

logger = get_logger(__name__)


class Endpoint(Enum):
    """Monitoring endpoints understood by the fetcher."""

    VARZ = "/varz"
    CONNZ = "/connz"


_DECODERS: dict[Endpoint, Callable[[Any], Any]] = {
    Endpoint.VARZ: ServerStats.from_varz,
    Endpoint.CONNZ: ConnectionList.from_connz,
}


class StatsFetcher:
    """
    Fetches and decodes monitoring data with a bounded retry budget.

    Every failure (transport error, non-2xx status, undecodable body) is
    retried after a fixed backoff. Once max_retries attempts have failed,
    UnreachableServer is raised carrying the last failure as its cause.
    """

    def __init__(
        self,
        config: Config,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the StatsFetcher.

        Args:
            config: Validated options; supplies host, port and retry budget.
            session: HTTP session to use. A new one is created if omitted.
            sleep: Function used to wait between attempts.
        """
        self._config = config
        self._session = session or requests.Session()
        self._sleep = sleep

    def url_for(self, endpoint: Endpoint) -> str:
        """Get the absolute URL of an endpoint."""
        return self._config.base_url + endpoint.value

    def params_for(self, endpoint: Endpoint, sort_key: SortKey | None = None) -> dict[str, Any]:
        """Get the query parameters of an endpoint request."""
        if endpoint is Endpoint.CONNZ:
            key = sort_key or self._config.sort_key
            return {"limit": self._config.conn_limit, "s": key.value}
        return {}

    def fetch(self, endpoint: Endpoint, params: dict[str, Any] | None = None) -> Any:
        """
        Request an endpoint and decode the response.

        Args:
            endpoint: Which endpoint to query.
            params: Query parameters; defaults to params_for(endpoint).

        Returns:
            ServerStats for VARZ, ConnectionList for CONNZ.

        Raises:
            UnreachableServer: If every attempt failed.
        """
        url = self.url_for(endpoint)
        if params is None:
            params = self.params_for(endpoint)
        decode = _DECODERS[endpoint]
        attempts = self._config.max_retries
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(url, params=params, timeout=self._config.request_timeout)
                response.raise_for_status()
                try:
                    body = response.json()
                except ValueError as e:
                    raise MalformedResponse(f"could not unmarshal json: {e}", url=url) from e
                try:
                    return decode(body)
                except MalformedResponse as e:
                    e.url = url
                    raise
            except (requests.exceptions.RequestException, MalformedResponse) as e:
                last_error = e
                if attempt == attempts:
                    logger.error(f"Request to {url} failed after {attempts} attempts: {e}")
                    break
                logger.warning(
                    f"Could not monitor {url} (attempt {attempt}/{attempts}): {e}. "
                    f"Backing off for {self._config.retry_wait}s..."
                )
                self._sleep(self._config.retry_wait)

        raise UnreachableServer(url, attempts, last_error) from last_error

    def fetch_server_stats(self) -> ServerStats:
        """Fetch the server-wide statistics."""
        return self.fetch(Endpoint.VARZ)

    def fetch_connections(self, sort_key: SortKey | None = None) -> ConnectionList:
        """Fetch the connection list, ranked at the source by sort_key."""
        return self.fetch(Endpoint.CONNZ, self.params_for(Endpoint.CONNZ, sort_key))

    def close(self) -> None:
        """Release the HTTP session."""
        self._session.close()
