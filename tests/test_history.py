"""Tests for metric histories."""

import pytest

from conftest import make_gpu, make_snapshot
from wtop.history import DEFAULT_CAPACITY, History, MetricHistories
from wtop.models import MemoryStats
from wtop.rates import INVALID_RATES, NetRates


class TestHistory:
    """Tests for the bounded History buffer."""

    def test_default_capacity(self):
        """Test the default capacity."""
        assert History().capacity == DEFAULT_CAPACITY

    def test_rejects_zero_capacity(self):
        """Test a capacity below one is refused."""
        with pytest.raises(ValueError):
            History(0)

    def test_empty(self):
        """Test a new history has no samples."""
        history = History(3)
        assert len(history) == 0
        assert history.series() == []
        assert history.latest is None

    def test_evicts_oldest(self):
        """Test the buffer never exceeds capacity and keeps the newest."""
        history = History(3)
        for value in range(5):
            history.push(value)
        assert len(history) == 3
        assert history.series() == [2.0, 3.0, 4.0]
        assert history.latest == 4.0

    def test_series_is_a_copy(self):
        """Test callers cannot mutate the buffer through series()."""
        history = History(3)
        history.push(1)
        history.series().append(99.0)
        assert history.series() == [1.0]


class TestMetricHistories:
    """Tests for per-snapshot recording."""

    def test_record_pushes_measured_metrics(self):
        """Test one sample per measured metric."""
        histories = MetricHistories(10)
        histories.record(make_snapshot(), NetRates(up=10.0, down=20.0, valid=True))

        assert histories.cpu.series() == [25.0]
        assert histories.memory.series() == [50.0]
        assert histories.swap.series() == [25.0]
        assert histories.disk.series() == [25.0]
        assert histories.net_up.series() == [10.0]
        assert histories.net_down.series() == [20.0]

    def test_invalid_rates_are_not_recorded(self):
        """Test the baseline tick leaves network histories empty."""
        histories = MetricHistories(10)
        histories.record(make_snapshot(), INVALID_RATES)
        assert len(histories.net_up) == 0
        assert len(histories.net_down) == 0

    def test_absent_sources_are_skipped(self):
        """Test missing swap and disk push nothing."""
        histories = MetricHistories(10)
        snap = make_snapshot(swap=MemoryStats(total=0, used=0), disk=None)
        histories.record(snap, INVALID_RATES)
        assert len(histories.swap) == 0
        assert len(histories.disk) == 0
        assert len(histories.cpu) == 1

    def test_gpu_history_per_index(self):
        """Test each GPU index gets its own history."""
        histories = MetricHistories(10)
        snap = make_snapshot(gpus=(make_gpu(0, utilization=10.0), make_gpu(1, utilization=90.0)))
        histories.record(snap, INVALID_RATES)
        histories.record(snap, INVALID_RATES)

        assert histories.gpu[0].series() == [10.0, 10.0]
        assert histories.gpu[1].series() == [90.0, 90.0]
        assert histories.gpu[1].capacity == 10
