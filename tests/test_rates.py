"""Tests for rate computation."""

import pytest

from natstop.models import Counters, RateSample
from natstop.rates import compute_rates


class TestComputeRates:
    """Tests for compute_rates."""

    def test_rates_are_delta_over_elapsed(self):
        """Test each rate is the counter delta divided by elapsed seconds."""
        previous = Counters(in_msgs=100, out_msgs=200, in_bytes=1000, out_bytes=2000)
        current = Counters(in_msgs=150, out_msgs=300, in_bytes=1500, out_bytes=2100)

        rates = compute_rates(previous, current, 2.0)

        assert rates.in_msgs_per_sec == 25.0
        assert rates.out_msgs_per_sec == 50.0
        assert rates.in_bytes_per_sec == 250.0
        assert rates.out_bytes_per_sec == 50.0

    @pytest.mark.parametrize(
        "prev,curr,elapsed",
        [(0, 0, 1.0), (7, 7, 0.5), (0, 1, 3.0), (10, 1 << 40, 0.25), (5, 8, 1e-3)],
    )
    def test_rate_is_exact(self, prev, curr, elapsed):
        """Test rate equals (curr - prev) / elapsed for non-decreasing counters."""
        rates = compute_rates(Counters(in_msgs=prev), Counters(in_msgs=curr), elapsed)

        assert rates.in_msgs_per_sec == (curr - prev) / elapsed

    def test_counter_reset_is_zero(self):
        """Test a decreasing counter (server restart) yields a zero rate."""
        previous = Counters(in_msgs=5000, out_msgs=10, in_bytes=9000, out_bytes=10)
        current = Counters(in_msgs=3, out_msgs=20, in_bytes=0, out_bytes=30)

        rates = compute_rates(previous, current, 1.0)

        assert rates.in_msgs_per_sec == 0.0
        assert rates.in_bytes_per_sec == 0.0
        assert rates.out_msgs_per_sec == 10.0
        assert rates.out_bytes_per_sec == 20.0

    @pytest.mark.parametrize("elapsed", [0.0, -1.0])
    def test_non_positive_elapsed(self, elapsed):
        """Test a non-positive elapsed time yields the zero sample."""
        rates = compute_rates(Counters(), Counters(in_msgs=100), elapsed)

        assert rates == RateSample.zero()
