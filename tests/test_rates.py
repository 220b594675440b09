"""Tests for network rate computation."""

import pytest

from conftest import make_snapshot
from wtop.models import NetCounters
from wtop.rates import INVALID_RATES, compute_rates


def _snap(timestamp: float, sent: int, recv: int):
    return make_snapshot(timestamp, net=NetCounters(bytes_sent=sent, bytes_recv=recv))


class TestComputeRates:
    """Tests for compute_rates."""

    def test_first_snapshot_is_invalid(self):
        """Test the first snapshot only seeds the baseline."""
        assert compute_rates(None, _snap(10.0, 100, 100)) == INVALID_RATES

    def test_bytes_per_second(self):
        """Test rates are deltas divided by elapsed seconds."""
        rates = compute_rates(_snap(10.0, 1000, 5000), _snap(12.0, 3000, 9000))
        assert rates.valid
        assert rates.up == pytest.approx(1000.0)
        assert rates.down == pytest.approx(2000.0)

    def test_counter_reset_reports_zero(self):
        """Test a counter going backwards reports zero, never negative."""
        rates = compute_rates(_snap(10.0, 5000, 5000), _snap(11.0, 10, 6000))
        assert rates.valid
        assert rates.up == 0.0
        assert rates.down == pytest.approx(1000.0)

    @pytest.mark.parametrize("elapsed", [0.0, -1.0])
    def test_non_positive_elapsed_is_invalid(self, elapsed):
        """Test clock anomalies yield invalid rates."""
        rates = compute_rates(_snap(10.0, 0, 0), _snap(10.0 + elapsed, 100, 100))
        assert not rates.valid

    def test_missing_counters_are_invalid(self):
        """Test rates need counters on both sides."""
        prev = make_snapshot(10.0, net=None)
        curr = _snap(11.0, 100, 100)
        assert not compute_rates(prev, curr).valid
        assert not compute_rates(curr, make_snapshot(12.0, net=None)).valid

    def test_idle_link_is_valid_zero(self):
        """Test unchanged counters give valid zero rates."""
        rates = compute_rates(_snap(10.0, 50, 50), _snap(11.0, 50, 50))
        assert rates.valid
        assert (rates.up, rates.down) == (0.0, 0.0)

    def test_five_second_window(self):
        """Test 500 bytes over five seconds is 100 B/s."""
        rates = compute_rates(_snap(0.0, 1000, 0), _snap(5.0, 1500, 0))
        assert rates.up == pytest.approx(100.0)
        assert compute_rates(_snap(0.0, 1000, 0), _snap(5.0, 500, 0)).up == 0.0
