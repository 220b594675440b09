"""Tests for wtop data models."""

import dataclasses

import pytest

from conftest import make_gpu, make_process, make_snapshot
from wtop.models import (
    DiskUsage,
    GPUInfo,
    LoadAverage,
    MemoryStats,
    SortMode,
    sort_processes,
)


def test_process_snapshot_creation():
    """Test ProcessSnapshot dataclass creation."""
    snapshot = make_process(
        123,
        name="test_process",
        username="testuser",
        status="R",
        cpu_percent=50.0,
        nice=-5,
        priority=15,
        command_line="/usr/bin/test",
    )

    assert snapshot.pid == 123
    assert snapshot.name == "test_process"
    assert snapshot.username == "testuser"
    assert snapshot.status == "R"
    assert snapshot.cpu_percent == 50.0
    assert snapshot.nice == -5
    assert snapshot.priority == 15
    assert snapshot.command_line == "/usr/bin/test"


def test_process_snapshot_is_frozen():
    """Test that ProcessSnapshot is immutable (frozen)."""
    snapshot = make_process(1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.pid = 999


def test_models_use_slots():
    """Test that snapshot models use __slots__ for memory efficiency."""
    assert not hasattr(make_process(1), "__dict__")
    assert not hasattr(make_snapshot(), "__dict__")
    assert not hasattr(make_gpu(), "__dict__")


class TestSnapshot:
    """Tests for Snapshot and its parts."""

    def test_core_count(self):
        """Test core_count follows the per-core list."""
        assert make_snapshot().core_count == 4
        assert make_snapshot(cpu_percent_per_core=()).core_count == 0

    def test_gpu_present(self):
        """Test gpu_present is False without devices."""
        assert not make_snapshot().gpu_present
        assert make_snapshot(gpus=(make_gpu(),)).gpu_present

    def test_default_collections_are_empty(self):
        """Test optional sections default to empty."""
        snap = make_snapshot(processes=())
        assert snap.processes == ()
        assert snap.gpus == ()
        assert dict(snap.gpu_processes) == {}

    def test_unreported_load(self):
        """Test unreported load averages are flagged."""
        load = LoadAverage.unreported()
        assert not load.reported
        assert (load.load1, load.load5, load.load15) == (0.0, 0.0, 0.0)

    def test_swap_not_configured(self):
        """Test a zero swap total means no swap."""
        assert not MemoryStats(total=0, used=0).present
        assert MemoryStats(total=1, used=0).present

    def test_disk_percent(self):
        """Test disk percent and zero-total guard."""
        assert DiskUsage("/", used=25, total=100).percent == 25.0
        assert DiskUsage("/", used=25, total=0).percent == 0.0
        assert not DiskUsage("/", used=0, total=0).present

    def test_gpu_memory_percent(self):
        """Test GPU memory percent and zero-total guard."""
        assert make_gpu(memory_used=512.0, memory_total=2048.0).memory_percent == 25.0
        assert GPUInfo(index=0, name="x").memory_percent == 0.0


class TestSortMode:
    """Tests for SortMode and process ordering."""

    def test_cycle(self):
        """Test CPU -> MEMORY -> TIME -> CPU."""
        assert SortMode.CPU.next() is SortMode.MEMORY
        assert SortMode.MEMORY.next() is SortMode.TIME
        assert SortMode.TIME.next() is SortMode.CPU

    def test_labels(self):
        """Test labels shown to the user."""
        assert [mode.label for mode in SortMode] == ["CPU", "MEM", "TIME"]

    def test_sort_by_cpu_descending(self):
        """Test CPU sort puts the busiest process first."""
        pids = [p.pid for p in sort_processes(make_snapshot().processes, SortMode.CPU)]
        assert pids == [200, 300, 100]

    def test_sort_by_memory_descending(self):
        """Test MEMORY sort puts the largest process first."""
        pids = [p.pid for p in sort_processes(make_snapshot().processes, SortMode.MEMORY)]
        assert pids == [100, 300, 200]

    def test_sort_by_time_oldest_first(self):
        """Test TIME sort puts the longest-running process first."""
        pids = [p.pid for p in sort_processes(make_snapshot().processes, SortMode.TIME)]
        assert pids == [300, 100, 200]

    def test_sort_is_stable(self):
        """Test ties keep scan order."""
        procs = [make_process(pid, cpu_percent=1.0) for pid in (5, 3, 9)]
        assert [p.pid for p in sort_processes(procs, SortMode.CPU)] == [5, 3, 9]
