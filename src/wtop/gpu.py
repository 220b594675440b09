"""NVIDIA GPU inventory via nvidia-smi.

Every call is bounded by a timeout so a hung driver can only cost one tick of
GPU data, never the whole snapshot.
"""

import logging
import subprocess
import sys

from wtop.errors import SourceUnavailable
from wtop.models import GPUInfo, GPUProcess

logger = logging.getLogger(__name__)

GPU_QUERY_FIELDS = (
    "index",
    "name",
    "driver_version",
    "utilization.gpu",
    "memory.used",
    "memory.total",
    "temperature.gpu",
    "power.draw",
    "power.limit",
    "fan.speed",
    "clocks.gr",
    "clocks.mem",
    "clocks.sm",
    "pstate",
    "clocks_throttle_reasons.active",
    "utilization.memory",
)

PROCESS_QUERY_FIELDS = ("pid", "process_name", "used_memory")

# Placeholders nvidia-smi prints for fields a device does not support.
_MISSING = {"", "[N/A]", "N/A", "[Not Supported]", "[Unknown Error]"}

THROTTLE_REASONS = (
    (0x01, "GPU Idle"),
    (0x02, "App Clocks"),
    (0x04, "SW Power Cap"),
    (0x08, "HW Slowdown"),
    (0x10, "Sync Boost"),
    (0x20, "SW Thermal"),
    (0x40, "HW Thermal"),
    (0x80, "HW Power Brake"),
    (0x100, "Display Clock"),
)

# nvidia-smi reports fan speed as a percentage only; RPM is shown against a
# nominal 5000 RPM maximum.
NOMINAL_MAX_FAN_RPM = 5000


def _command() -> str:
    return "nvidia-smi.exe" if sys.platform == "win32" else "nvidia-smi"


def parse_float(value: str) -> float:
    value = value.strip()
    if value in _MISSING:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_int(value: str) -> int:
    value = value.strip()
    if value in _MISSING:
        return 0
    try:
        return int(value, 0)
    except ValueError:
        return int(parse_float(value))


def parse_throttle_reasons(value: str) -> tuple[str, ...]:
    """Decode the active-throttle bitmask (decimal or 0x-hex)."""
    mask = parse_int(value)
    if mask == 0:
        return ("None",)
    reasons = tuple(name for bit, name in THROTTLE_REASONS if mask & bit)
    return reasons or ("Unknown",)


def parse_gpu_line(line: str) -> GPUInfo | None:
    """Parse one CSV row of the GPU query. Returns None for short rows."""
    fields = [field.strip() for field in line.split(",")]
    if len(fields) < len(GPU_QUERY_FIELDS):
        return None
    fan_speed = parse_float(fields[9])
    return GPUInfo(
        index=parse_int(fields[0]),
        name=fields[1],
        driver=fields[2],
        utilization=parse_float(fields[3]),
        memory_used=parse_float(fields[4]),
        memory_total=parse_float(fields[5]),
        temperature=parse_float(fields[6]),
        power_draw=parse_float(fields[7]),
        power_limit=parse_float(fields[8]),
        fan_speed=fan_speed,
        fan_rpm=int(fan_speed / 100 * NOMINAL_MAX_FAN_RPM),
        clock_core=parse_int(fields[10]),
        clock_memory=parse_int(fields[11]),
        clock_sm=parse_int(fields[12]),
        pstate="" if fields[13] in _MISSING else fields[13],
        throttle_reasons=parse_throttle_reasons(fields[14]),
        memory_utilization=parse_float(fields[15]),
    )


def parse_process_line(line: str) -> GPUProcess | None:
    fields = [field.strip() for field in line.split(",")]
    if len(fields) < len(PROCESS_QUERY_FIELDS) or not fields[0]:
        return None
    return GPUProcess(
        pid=parse_int(fields[0]),
        name=fields[1],
        memory_used=parse_float(fields[2]),
    )


class NvidiaSmi:
    """
    Reads GPU inventory and attached processes from nvidia-smi.

    A missing binary disables further calls for the rest of the run; a
    timeout or failing exit only makes the current call unavailable.
    """

    def __init__(self, timeout: float = 2.0, process_cap: int = 5) -> None:
        self.timeout = timeout
        self.process_cap = process_cap
        self._available: bool | None = None  # None = not run yet

    @property
    def available(self) -> bool | None:
        return self._available

    def _run(self, args: list[str]) -> str:
        if self._available is False:
            raise SourceUnavailable("nvidia-smi not available")
        try:
            result = subprocess.run(
                [_command(), *args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            self._available = False
            raise SourceUnavailable("nvidia-smi not found") from e
        except subprocess.TimeoutExpired as e:
            raise SourceUnavailable(f"nvidia-smi timed out after {self.timeout}s") from e
        except OSError as e:
            raise SourceUnavailable(f"nvidia-smi failed: {e}") from e

        if result.returncode != 0:
            raise SourceUnavailable(
                f"nvidia-smi exited with {result.returncode}: {result.stderr.strip()}"
            )
        self._available = True
        return result.stdout

    def query_gpus(self) -> tuple[GPUInfo, ...]:
        output = self._run(
            [f"--query-gpu={','.join(GPU_QUERY_FIELDS)}", "--format=csv,noheader,nounits"]
        )
        gpus = []
        for line in output.strip().splitlines():
            gpu = parse_gpu_line(line)
            if gpu is not None:
                gpus.append(gpu)
        return tuple(gpus)

    def query_processes(self, index: int) -> tuple[GPUProcess, ...]:
        output = self._run(
            [
                f"--query-compute-apps={','.join(PROCESS_QUERY_FIELDS)}",
                "--format=csv,noheader,nounits",
                "-i",
                str(index),
            ]
        )
        procs = []
        for line in output.strip().splitlines():
            proc = parse_process_line(line)
            if proc is not None:
                procs.append(proc)
        return tuple(procs[: max(0, self.process_cap)])

    def read(self) -> tuple[tuple[GPUInfo, ...], dict[int, tuple[GPUProcess, ...]]]:
        """
        Inventory plus attached processes per GPU index.

        Raises:
            SourceUnavailable: If the inventory itself cannot be read.
        """
        gpus = self.query_gpus()
        processes: dict[int, tuple[GPUProcess, ...]] = {}
        for gpu in gpus:
            try:
                procs = self.query_processes(gpu.index)
            except SourceUnavailable as e:
                logger.debug("GPU %d process query unavailable: %s", gpu.index, e)
                continue
            if procs:
                processes[gpu.index] = procs
        return gpus, processes
