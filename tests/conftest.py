"""Shared fixtures for wtop tests."""

from dataclasses import replace

import pytest

from wtop.errors import RefreshFailure
from wtop.models import (
    DiskUsage,
    GPUInfo,
    GPUProcess,
    LoadAverage,
    MemoryStats,
    NetCounters,
    ProcessSnapshot,
    ProcessSummary,
    Snapshot,
)

GiB = 1024**3


def make_process(pid: int = 100, **overrides) -> ProcessSnapshot:
    fields = dict(
        pid=pid,
        ppid=1,
        name=f"proc{pid}",
        username="user",
        status="S",
        cpu_percent=1.0,
        memory_percent=1.0,
        memory_vms=200 * 1024**2,
        memory_rss=50 * 1024**2,
        memory_shared=10 * 1024**2,
        threads=1,
        nice=0,
        priority=20,
        create_time=900.0,
        command_line=f"/usr/bin/proc{pid} --flag",
    )
    fields.update(overrides)
    return ProcessSnapshot(**fields)


def make_snapshot(timestamp: float = 1000.0, **overrides) -> Snapshot:
    fields = dict(
        timestamp=timestamp,
        hostname="testhost",
        uptime_seconds=3600.0,
        load_avg=LoadAverage(1.0, 0.5, 0.25),
        cpu_total=25.0,
        cpu_percent_per_core=(10.0, 20.0, 30.0, 40.0),
        memory=MemoryStats(
            total=16 * GiB,
            used=8 * GiB,
            available=8 * GiB,
            cached=2 * GiB,
            buffers=GiB // 2,
            used_percent=50.0,
        ),
        swap=MemoryStats(total=4 * GiB, used=GiB, used_percent=25.0),
        disk=DiskUsage(path="/", used=100 * GiB, total=400 * GiB),
        net=NetCounters(bytes_sent=1000, bytes_recv=2000),
        process_summary=ProcessSummary(total=3, running=1, threads=7),
        processes=(
            make_process(100, cpu_percent=5.0, memory_percent=30.0, create_time=500.0),
            make_process(200, cpu_percent=50.0, memory_percent=10.0, create_time=800.0),
            make_process(300, cpu_percent=20.0, memory_percent=20.0, create_time=100.0),
        ),
    )
    fields.update(overrides)
    return Snapshot(**fields)


def make_gpu(index: int = 0, **overrides) -> GPUInfo:
    fields = dict(
        index=index,
        name="NVIDIA GeForce RTX 4090",
        driver="550.54",
        utilization=42.0,
        memory_used=4096.0,
        memory_total=24576.0,
        memory_utilization=10.0,
        temperature=55.0,
        power_draw=120.5,
        power_limit=450.0,
        fan_speed=30.0,
        fan_rpm=1500,
        clock_core=2100,
        clock_memory=10500,
        clock_sm=2100,
        pstate="P2",
        throttle_reasons=("None",),
    )
    fields.update(overrides)
    return GPUInfo(**fields)


def make_gpu_snapshot(timestamp: float = 1000.0, **overrides) -> Snapshot:
    snap = make_snapshot(timestamp, **overrides)
    return replace(
        snap,
        gpus=(make_gpu(0),),
        gpu_processes={0: (GPUProcess(pid=200, name="python", memory_used=2048.0),)},
    )


class FakeProvider:
    """
    MetricsProvider returning scripted snapshots (or raising scripted errors).

    Once the script runs out the last snapshot repeats one second later per
    call, like a real clock.
    """

    def __init__(self, *results) -> None:
        self.results = list(results) or [make_snapshot()]
        self.calls = 0
        self.limits: list[int] = []

    def collect_snapshot(self, limit: int) -> Snapshot:
        self.limits.append(limit)
        overrun = self.calls - (len(self.results) - 1)
        self.calls += 1
        result = self.results[min(self.calls - 1, len(self.results) - 1)]
        if isinstance(result, Exception):
            raise result
        if overrun > 0:
            return replace(result, timestamp=result.timestamp + overrun)
        return result


@pytest.fixture
def snapshot() -> Snapshot:
    return make_snapshot()


@pytest.fixture
def gpu_snapshot() -> Snapshot:
    return make_gpu_snapshot()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(make_snapshot(1000.0), make_snapshot(1001.0))


@pytest.fixture
def failure() -> RefreshFailure:
    return RefreshFailure("psutil exploded")
