"""Data models for wtop."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """1/5/15 minute load average, flagged when the platform does not report it."""

    load1: float
    load5: float
    load15: float
    reported: bool = True

    @classmethod
    def unreported(cls) -> "LoadAverage":
        return cls(0.0, 0.0, 0.0, reported=False)


@dataclass(slots=True, frozen=True)
class MemoryStats:
    """Memory or swap usage in bytes."""

    total: int
    used: int
    available: int = 0
    cached: int = 0
    buffers: int = 0
    used_percent: float = 0.0

    @property
    def present(self) -> bool:
        """A zero total means the resource is not configured (e.g. no swap)."""
        return self.total > 0


@dataclass(slots=True, frozen=True)
class DiskUsage:
    """Usage of the filesystem holding one primary path."""

    path: str
    used: int
    total: int

    @property
    def present(self) -> bool:
        return self.total > 0

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.used / self.total * 100


@dataclass(slots=True, frozen=True)
class NetCounters:
    """Cumulative byte counters summed over all interfaces."""

    bytes_sent: int
    bytes_recv: int


@dataclass(slots=True, frozen=True)
class ProcessSummary:
    """Counts over every process seen in one scan, not only the top-N."""

    total: int = 0
    running: int = 0
    threads: int = 0


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    ppid: int
    name: str
    username: str
    status: str  # 'R', 'S', 'Z', 'D', etc.
    cpu_percent: float  # 0.0 - 100.0 * core_count
    memory_percent: float
    memory_vms: int  # Bytes
    memory_rss: int  # Bytes
    memory_shared: int  # Bytes
    threads: int
    nice: int
    priority: int
    create_time: float  # Epoch seconds
    command_line: str


@dataclass(slots=True, frozen=True)
class GPUInfo:
    """One GPU device as reported by the vendor tool."""

    index: int
    name: str
    driver: str = ""
    utilization: float = 0.0  # %
    memory_used: float = 0.0  # MiB
    memory_total: float = 0.0  # MiB
    memory_utilization: float = 0.0  # %
    temperature: float = 0.0  # °C
    power_draw: float = 0.0  # W
    power_limit: float = 0.0  # W
    fan_speed: float = 0.0  # %
    fan_rpm: int = 0
    clock_core: int = 0  # MHz
    clock_memory: int = 0  # MHz
    clock_sm: int = 0  # MHz
    pstate: str = ""
    throttle_reasons: tuple[str, ...] = ()

    @property
    def memory_percent(self) -> float:
        if self.memory_total <= 0:
            return 0.0
        return self.memory_used / self.memory_total * 100


@dataclass(slots=True, frozen=True)
class GPUProcess:
    """A process attached to a GPU."""

    pid: int
    name: str
    memory_used: float  # MiB
    kind: str = "Compute"


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    Point-in-time reading of every monitored metric.

    Sources that could not be read are left empty: ``disk`` and ``net`` are
    None, ``gpus`` is empty, ``load_avg.reported`` is False and a swap
    ``total`` of zero means no swap is configured.
    """

    timestamp: float
    hostname: str
    uptime_seconds: float
    load_avg: LoadAverage
    cpu_total: float
    cpu_percent_per_core: tuple[float, ...]
    memory: MemoryStats
    swap: MemoryStats
    disk: DiskUsage | None
    net: NetCounters | None
    process_summary: ProcessSummary
    processes: tuple[ProcessSnapshot, ...] = ()
    gpus: tuple[GPUInfo, ...] = ()
    gpu_processes: Mapping[int, tuple[GPUProcess, ...]] = field(default_factory=dict)

    @property
    def core_count(self) -> int:
        return len(self.cpu_percent_per_core)

    @property
    def gpu_present(self) -> bool:
        return bool(self.gpus)


class SortMode(Enum):
    """Process table ordering."""

    CPU = "cpu"
    MEMORY = "mem"
    TIME = "time"

    @property
    def label(self) -> str:
        return self.value.upper()

    def next(self) -> "SortMode":
        """Return the mode after this one, wrapping around."""
        modes = list(SortMode)
        return modes[(modes.index(self) + 1) % len(modes)]


def sort_processes(
    processes: Iterable[ProcessSnapshot], mode: SortMode
) -> list[ProcessSnapshot]:
    """Sort processes for display. Sorting is stable so ties keep scan order."""
    if mode is SortMode.MEMORY:
        return sorted(processes, key=lambda p: p.memory_percent, reverse=True)
    if mode is SortMode.TIME:
        return sorted(processes, key=lambda p: p.create_time)
    return sorted(processes, key=lambda p: p.cpu_percent, reverse=True)
