"""Per-second throughput from cumulative counters."""

from natstop.models import Counters, RateSample


def _rate(previous: int, current: int, elapsed: float) -> float:
    delta = current - previous
    if delta < 0:
        # Counter went backwards: the server restarted.
        return 0.0
    return delta / elapsed


def compute_rates(previous: Counters, current: Counters, elapsed: float) -> RateSample:
    """
    Compute message and byte rates between two counter captures.

    Args:
        previous: Counters of the earlier capture.
        current: Counters of the later capture.
        elapsed: Seconds between the two captures.

    Returns:
        The rates per second; the zero sample if elapsed is not positive.
    """
    if elapsed <= 0:
        return RateSample.zero()
    return RateSample(
        in_msgs_per_sec=_rate(previous.in_msgs, current.in_msgs, elapsed),
        out_msgs_per_sec=_rate(previous.out_msgs, current.out_msgs, elapsed),
        in_bytes_per_sec=_rate(previous.in_bytes, current.in_bytes, elapsed),
        out_bytes_per_sec=_rate(previous.out_bytes, current.out_bytes, elapsed),
    )
