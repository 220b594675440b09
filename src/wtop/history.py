"""Fixed-capacity sample histories behind the sparklines."""

from collections import deque

from wtop.models import Snapshot
from wtop.rates import NetRates

DEFAULT_CAPACITY = 180


class History:
    """FIFO buffer of the most recent samples of one scalar metric."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be >= 1, got {capacity}")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    @property
    def latest(self) -> float | None:
        return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)

    def push(self, value: float) -> None:
        """Append a sample, evicting the oldest one when full."""
        self._samples.append(float(value))

    def series(self) -> list[float]:
        """Samples oldest first. Empty until the first push."""
        return list(self._samples)


class MetricHistories:
    """One History per tracked metric, plus one per GPU index."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self.cpu = History(capacity)
        self.memory = History(capacity)
        self.swap = History(capacity)
        self.disk = History(capacity)
        self.net_up = History(capacity)
        self.net_down = History(capacity)
        self.gpu: dict[int, History] = {}

    def gpu_history(self, index: int) -> History:
        if index not in self.gpu:
            self.gpu[index] = History(self.capacity)
        return self.gpu[index]

    def record(self, snapshot: Snapshot, rates: NetRates) -> None:
        """Push one sample per metric that the snapshot actually measured."""
        self.cpu.push(snapshot.cpu_total)
        self.memory.push(snapshot.memory.used_percent)
        if snapshot.swap.present:
            self.swap.push(snapshot.swap.used_percent)
        if snapshot.disk is not None and snapshot.disk.present:
            self.disk.push(snapshot.disk.percent)
        if rates.valid:
            self.net_up.push(rates.up)
            self.net_down.push(rates.down)
        for gpu in snapshot.gpus:
            self.gpu_history(gpu.index).push(gpu.utilization)
