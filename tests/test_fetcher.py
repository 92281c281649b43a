"""Tests for the monitoring HTTP client."""

from unittest.mock import MagicMock, Mock

import pytest
import requests

from natstop.config import Config
from natstop.exceptions import MalformedResponse, UnreachableServer
from natstop.fetcher import Endpoint, StatsFetcher
from natstop.models import ConnectionList, ServerStats, SortKey

VARZ = {
    "cpu": 1.0,
    "mem": 1024,
    "in_msgs": 1,
    "out_msgs": 2,
    "in_bytes": 3,
    "out_bytes": 4,
    "options": {"max_connections": 64},
}

CONNZ = {"num_connections": 1, "connections": [{"cid": 1, "ip": "127.0.0.1", "port": 5000}]}


def ok_response(body):
    """Build a mocked 200 response returning body as JSON."""
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = body
    return response


def error_response(status):
    """Build a mocked response failing raise_for_status."""
    response = Mock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Server Error")
    return response


def bad_json_response():
    """Build a mocked 200 response with an undecodable body."""
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    return response


@pytest.fixture
def session():
    """Mocked requests session."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def sleeps():
    """Recorded backoff sleeps."""
    return []


@pytest.fixture
def fetcher(session, sleeps):
    """StatsFetcher against the mocked session."""
    config = Config(host="nats.local", port=8222, conn_limit=50, sort_key=SortKey.SUBS)
    return StatsFetcher(config, session=session, sleep=sleeps.append)


class TestRequests:
    """Tests for request construction and decoding."""

    @pytest.mark.unit
    def test_fetch_varz(self, fetcher, session):
        """Test /varz is requested and decoded into ServerStats."""
        session.get.return_value = ok_response(VARZ)

        stats = fetcher.fetch_server_stats()

        assert isinstance(stats, ServerStats)
        assert stats.max_connections == 64
        session.get.assert_called_once_with("http://nats.local:8222/varz", params={}, timeout=5.0)

    @pytest.mark.unit
    def test_fetch_connz_default_sort(self, fetcher, session):
        """Test /connz carries the limit and the configured sort hint."""
        session.get.return_value = ok_response(CONNZ)

        conns = fetcher.fetch(Endpoint.CONNZ)

        assert isinstance(conns, ConnectionList)
        assert conns.connections[0].cid == 1
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"limit": 50, "s": "subs"}

    @pytest.mark.unit
    def test_fetch_connz_sort_override(self, fetcher, session):
        """Test the sort hint follows the key passed by the caller."""
        session.get.return_value = ok_response(CONNZ)

        fetcher.fetch_connections(SortKey.BYTES_TO)

        _, kwargs = session.get.call_args
        assert kwargs["params"]["s"] == "bytes_to"


class TestRetries:
    """Tests for the retry and backoff budget."""

    @pytest.mark.unit
    def test_succeeds_after_four_failures(self, fetcher, session, sleeps):
        """Test four failures then success performs exactly four sleeps."""
        session.get.side_effect = [
            requests.exceptions.ConnectionError("refused"),
            error_response(500),
            bad_json_response(),
            ok_response({"unexpected": True}),
            ok_response(VARZ),
        ]

        stats = fetcher.fetch_server_stats()

        assert stats.cpu_percent == 1.0
        assert session.get.call_count == 5
        assert sleeps == [1.0, 1.0, 1.0, 1.0]

    @pytest.mark.unit
    def test_always_failing(self, fetcher, session, sleeps):
        """Test a server that always fails is given up on after five attempts."""
        cause = requests.exceptions.ConnectionError("refused")
        session.get.side_effect = cause

        with pytest.raises(UnreachableServer) as excinfo:
            fetcher.fetch_server_stats()

        assert session.get.call_count == 5
        assert len(sleeps) == 4
        assert excinfo.value.attempts == 5
        assert excinfo.value.cause is cause
        assert excinfo.value.__cause__ is cause
        assert excinfo.value.url == "http://nats.local:8222/varz"

    @pytest.mark.unit
    def test_malformed_body_escalates(self, fetcher, session):
        """Test a persistently undecodable body ends as UnreachableServer."""
        session.get.return_value = ok_response(["not", "an", "object"])

        with pytest.raises(UnreachableServer) as excinfo:
            fetcher.fetch_server_stats()

        assert isinstance(excinfo.value.cause, MalformedResponse)
        assert excinfo.value.cause.url == "http://nats.local:8222/varz"

    @pytest.mark.unit
    def test_custom_retry_budget(self, session, sleeps):
        """Test the retry budget comes from the configuration."""
        config = Config(max_retries=2, retry_wait=0.5)
        fetcher = StatsFetcher(config, session=session, sleep=sleeps.append)
        session.get.side_effect = requests.exceptions.Timeout("timed out")

        with pytest.raises(UnreachableServer):
            fetcher.fetch_server_stats()

        assert session.get.call_count == 2
        assert sleeps == [0.5]

    @pytest.mark.unit
    def test_non_finite_body_escalates(self, fetcher, session, sleeps):
        """Test a body with Infinity counters is retried like any bad body."""
        session.get.return_value = ok_response(dict(VARZ, in_msgs=float("inf")))

        with pytest.raises(UnreachableServer) as excinfo:
            fetcher.fetch_server_stats()

        assert session.get.call_count == 5
        assert len(sleeps) == 4
        assert isinstance(excinfo.value.cause, MalformedResponse)
