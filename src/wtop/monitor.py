"""Metric collection for wtop."""

import logging
import os
import socket
import threading
import time
from queue import Queue
from typing import Protocol

import psutil

from wtop.errors import RefreshFailure, SourceUnavailable
from wtop.gpu import NvidiaSmi
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

logger = logging.getLogger(__name__)

MIN_POLL_RATE = 0.1

PROCESS_ATTRS = [
    "pid",
    "ppid",
    "name",
    "username",
    "status",
    "cpu_percent",
    "memory_percent",
    "memory_info",
    "num_threads",
    "nice",
    "create_time",
    "cmdline",
]

# psutil status names to the single letters ps/top print.
STATUS_CODES = {
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_STOPPED: "T",
    psutil.STATUS_TRACING_STOP: "t",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_DEAD: "X",
    psutil.STATUS_WAKING: "W",
    psutil.STATUS_IDLE: "I",
    psutil.STATUS_LOCKED: "L",
    psutil.STATUS_WAITING: "W",
    psutil.STATUS_PARKED: "P",
}

# Linux kernel priority of a normal task is 20 plus its nice value.
BASE_PRIORITY = 20


class MetricsProvider(Protocol):
    """Anything able to produce a Snapshot on demand."""

    def collect_snapshot(self, limit: int) -> Snapshot: ...


def status_code(status: str | None) -> str:
    if not status:
        return "?"
    return STATUS_CODES.get(status, status[:1].upper())


class PsutilProvider:
    """
    Collects snapshots from psutil and, when a reader is given, nvidia-smi.

    Each source is read independently: a source that fails is left empty in
    the snapshot instead of failing the whole collection.
    """

    def __init__(self, disk_path: str = "/", gpu_reader: NvidiaSmi | None = None) -> None:
        """
        Initialize the provider.

        Args:
            disk_path: Path whose filesystem usage is reported.
            gpu_reader: GPU source; None disables GPU metrics.
        """
        self.disk_path = disk_path
        self.gpu_reader = gpu_reader
        self._hostname = socket.gethostname()
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent()
        psutil.cpu_percent(percpu=True)

    def collect_snapshot(self, limit: int) -> Snapshot:
        """Collect a snapshot of the current system state."""
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        processes, summary = self._collect_processes(limit)
        gpus, gpu_processes = self._collect_gpus()

        return Snapshot(
            timestamp=time.time(),
            hostname=self._hostname,
            uptime_seconds=max(0.0, time.time() - psutil.boot_time()),
            load_avg=self._load_average(),
            cpu_total=psutil.cpu_percent(),
            cpu_percent_per_core=tuple(psutil.cpu_percent(percpu=True)),
            memory=MemoryStats(
                total=mem.total,
                used=mem.used,
                available=mem.available,
                cached=getattr(mem, "cached", 0),
                buffers=getattr(mem, "buffers", 0),
                used_percent=mem.percent,
            ),
            swap=MemoryStats(total=swap.total, used=swap.used, used_percent=swap.percent),
            disk=self._disk_usage(),
            net=self._net_counters(),
            process_summary=summary,
            processes=processes,
            gpus=gpus,
            gpu_processes=gpu_processes,
        )

    @staticmethod
    def _load_average() -> LoadAverage:
        try:
            load1, load5, load15 = os.getloadavg()
        except (OSError, AttributeError):
            return LoadAverage.unreported()
        return LoadAverage(load1, load5, load15)

    def _disk_usage(self) -> DiskUsage | None:
        try:
            usage = psutil.disk_usage(self.disk_path)
        except OSError as e:
            logger.debug("Disk usage of %s unavailable: %s", self.disk_path, e)
            return None
        return DiskUsage(path=self.disk_path, used=usage.used, total=usage.total)

    @staticmethod
    def _net_counters() -> NetCounters | None:
        try:
            counters = psutil.net_io_counters()
        except (OSError, RuntimeError) as e:
            logger.debug("Network counters unavailable: %s", e)
            return None
        if counters is None:
            return None
        return NetCounters(bytes_sent=counters.bytes_sent, bytes_recv=counters.bytes_recv)

    def _collect_gpus(
        self,
    ) -> tuple[tuple[GPUInfo, ...], dict[int, tuple[GPUProcess, ...]]]:
        if self.gpu_reader is None:
            return (), {}
        try:
            return self.gpu_reader.read()
        except SourceUnavailable as e:
            logger.debug("GPU metrics unavailable: %s", e)
            return (), {}

    def _collect_processes(
        self, limit: int
    ) -> tuple[tuple[ProcessSnapshot, ...], ProcessSummary]:
        """
        Collect the top ``limit`` processes by CPU plus counts over all of them.

        Handles AccessDenied and ZombieProcess errors gracefully.
        """
        processes: list[ProcessSnapshot] = []
        running = 0
        threads = 0

        for proc in psutil.process_iter(attrs=PROCESS_ATTRS):
            try:
                with proc.oneshot():
                    snapshot = self._process_snapshot(proc.info)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Died mid-scan or not ours to read
                continue
            processes.append(snapshot)
            threads += snapshot.threads
            if snapshot.status == "R":
                running += 1

        summary = ProcessSummary(total=len(processes), running=running, threads=threads)
        processes.sort(key=lambda p: p.cpu_percent, reverse=True)
        return tuple(processes[: max(0, limit)]), summary

    @staticmethod
    def _process_snapshot(info: dict) -> ProcessSnapshot:
        cmdline = info.get("cmdline") or []
        name = info.get("name") or ""
        mem_info = info.get("memory_info")
        nice = info.get("nice") or 0

        return ProcessSnapshot(
            pid=info.get("pid", 0),
            ppid=info.get("ppid") or 0,
            name=name,
            username=info.get("username") or "",
            status=status_code(info.get("status")),
            cpu_percent=info.get("cpu_percent") or 0.0,
            memory_percent=info.get("memory_percent") or 0.0,
            memory_vms=mem_info.vms if mem_info else 0,
            memory_rss=mem_info.rss if mem_info else 0,
            memory_shared=getattr(mem_info, "shared", 0) if mem_info else 0,
            threads=info.get("num_threads") or 0,
            nice=nice,
            priority=BASE_PRIORITY + nice,
            create_time=info.get("create_time") or 0.0,
            command_line=" ".join(cmdline) if cmdline else name,
        )


class SystemMonitor:
    """
    Polls a MetricsProvider in a separate daemon thread.

    Every tick pushes either a Snapshot or a RefreshFailure to a thread-safe
    Queue; the UI loop drains it. Nothing is pushed once stop is requested.
    """

    def __init__(
        self,
        provider: MetricsProvider,
        update_queue: "Queue[Snapshot | RefreshFailure]",
        poll_rate: float = 2.0,
        limit: int = 50,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            provider: Source of snapshots.
            update_queue: Thread-safe queue to push updates to.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
            limit: How many processes each snapshot keeps.
        """
        self._provider = provider
        self._queue = update_queue
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._limit = limit
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        # A thread abandoned by a timed-out stop keeps its own, already set, event
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._stop_event,),
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()
        logger.debug("Monitor started, polling every %.1fs", self._poll_rate)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds). A
                collection still in flight finishes in the background and
                its result is dropped.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.debug("Monitor thread still collecting; leaving it to exit")
            self._thread = None

    def _poll_loop(self, stop_event: threading.Event) -> None:
        """Main polling loop running in the background thread."""
        # Wait first: the engine collects the baseline snapshot itself.
        while not stop_event.wait(timeout=self._poll_rate):
            update: Snapshot | RefreshFailure
            try:
                update = self._provider.collect_snapshot(self._limit)
            except Exception as exc:
                logger.warning("Snapshot collection failed: %s", exc)
                update = RefreshFailure(str(exc) or type(exc).__name__)

            if stop_event.is_set():
                break
            self._queue.put(update)
