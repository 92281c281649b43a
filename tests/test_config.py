"""Tests for configuration validation."""

import pytest

from natstop.config import Config
from natstop.exceptions import InvalidConfiguration
from natstop.models import SortKey, ViewMode


class TestConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        """Test defaults match the command-line defaults."""
        config = Config.from_options()

        assert config.host == "127.0.0.1"
        assert config.port == 8333
        assert config.conn_limit == 1024
        assert config.interval == 1.0
        assert config.sort_key is SortKey.CID
        assert config.view_mode is ViewMode.COMPACT
        assert config.max_retries == 5
        assert config.retry_wait == 1.0
        assert config.history_size == 150

    def test_base_url(self):
        """Test the monitoring URL is built from host and port."""
        assert Config(host="10.1.2.3", port=8222).base_url == "http://10.1.2.3:8222"

    def test_config_is_frozen(self):
        """Test that Config is immutable."""
        config = Config()

        with pytest.raises(AttributeError):
            config.port = 1


class TestFromOptions:
    """Tests for Config.from_options."""

    def test_string_values_are_converted(self):
        """Test raw command-line strings are converted to typed fields."""
        config = Config.from_options(port="8222", conn_limit="10", interval="0.5", sort="bytes_from")

        assert config.port == 8222
        assert config.conn_limit == 10
        assert config.interval == 0.5
        assert config.sort_key is SortKey.BYTES_FROM

    @pytest.mark.parametrize(
        "ui,expected",
        [("simple", ViewMode.COMPACT), ("dashboard", ViewMode.GRAPHICAL), ("graphs", ViewMode.GRAPHICAL)],
    )
    def test_ui_styles(self, ui, expected):
        """Test UI style names map to view modes."""
        assert Config.from_options(ui=ui).view_mode is expected

    def test_extra_fields_pass_through(self):
        """Test remaining fields are accepted as keyword arguments."""
        config = Config.from_options(retry_wait=0.0, history_size=10)

        assert config.retry_wait == 0.0
        assert config.history_size == 10

    @pytest.mark.parametrize(
        "options",
        [
            {"sort": "bogus"},
            {"interval": "soon"},
            {"interval": "0"},
            {"interval": -1},
            {"interval": "inf"},
            {"interval": "nan"},
            {"interval": float("inf")},
            {"port": "http"},
            {"port": 70000},
            {"conn_limit": 0},
            {"ui": "fancy"},
            {"host": ""},
            {"no_such_field": 1},
        ],
    )
    def test_invalid_options(self, options):
        """Test invalid values raise InvalidConfiguration."""
        with pytest.raises(InvalidConfiguration):
            Config.from_options(**options)

    def test_invalid_sort_message(self):
        """Test the error names the rejected sort key."""
        with pytest.raises(InvalidConfiguration, match="not a valid option to sort by: size"):
            Config.from_options(sort="size")

    def test_non_finite_interval_message(self):
        """Test an infinite interval is reported as an unusable interval."""
        with pytest.raises(InvalidConfiguration, match="refreshing interval must be a positive number"):
            Config.from_options(interval="inf")
