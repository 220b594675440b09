"""Network throughput derived from consecutive snapshots."""

from dataclasses import dataclass

from wtop.models import Snapshot


@dataclass(slots=True, frozen=True)
class NetRates:
    """Upload/download throughput in bytes per second."""

    up: float = 0.0
    down: float = 0.0
    valid: bool = False


INVALID_RATES = NetRates()


def _counter_rate(prev: int, curr: int, elapsed: float) -> float:
    # A counter that went backwards was reset or wrapped; report no traffic.
    if curr < prev:
        return 0.0
    return (curr - prev) / elapsed


def compute_rates(prev: Snapshot | None, curr: Snapshot) -> NetRates:
    """
    Compute network rates between two snapshots.

    The first snapshot of a run only seeds the baseline. Non-positive elapsed
    time (clock anomaly) and missing counters also yield invalid rates.
    """
    if prev is None or prev.net is None or curr.net is None:
        return INVALID_RATES

    elapsed = curr.timestamp - prev.timestamp
    if elapsed <= 0:
        return INVALID_RATES

    return NetRates(
        up=_counter_rate(prev.net.bytes_sent, curr.net.bytes_sent, elapsed),
        down=_counter_rate(prev.net.bytes_recv, curr.net.bytes_recv, elapsed),
        valid=True,
    )
