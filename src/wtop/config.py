"""Command-line configuration for wtop.

There is no config file and no environment surface: every setting has a
default here and can be overridden by a flag.
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from textual.logging import TextualHandler

from wtop.history import DEFAULT_CAPACITY
from wtop.themes import THEMES

MIN_INTERVAL = 0.1
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _default_disk_path() -> str:
    return os.path.abspath(os.sep)


@dataclass(slots=True)
class DashboardConfig:
    """Runtime settings of the dashboard."""

    interval: float = 1.0
    process_limit: int = 50
    history_capacity: int = DEFAULT_CAPACITY
    disk_path: str = field(default_factory=_default_disk_path)
    gpu: bool = True
    gpu_timeout: float = 2.0
    gpu_process_cap: int = 5
    theme: str = "dark"
    log_file: Path | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self.interval = max(MIN_INTERVAL, self.interval)
        self.process_limit = max(1, self.process_limit)
        self.history_capacity = max(1, self.history_capacity)
        self.gpu_process_cap = max(0, self.gpu_process_cap)
        self.theme = self.theme.lower()
        self.log_level = self.log_level.upper()


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from e
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wtop",
        description="Live terminal dashboard for CPU, memory, disk, network, processes and GPUs.",
    )
    parser.add_argument(
        "--interval", type=_positive_float, default=1.0,
        help="Seconds between samples (default: 1.0, minimum 0.1)",
    )
    parser.add_argument(
        "--limit", dest="process_limit", type=_positive_int, default=50,
        help="Top processes to collect per sample (default: 50)",
    )
    parser.add_argument(
        "--history", dest="history_capacity", type=_positive_int, default=DEFAULT_CAPACITY,
        help=f"Samples kept per sparkline (default: {DEFAULT_CAPACITY})",
    )
    parser.add_argument(
        "--disk-path", default=_default_disk_path(),
        help="Path whose filesystem usage is shown (default: filesystem root)",
    )
    parser.add_argument(
        "--no-gpu", dest="gpu", action="store_false",
        help="Do not query nvidia-smi",
    )
    parser.add_argument(
        "--gpu-timeout", type=_positive_float, default=2.0,
        help="Seconds before an nvidia-smi call is abandoned (default: 2.0)",
    )
    parser.add_argument(
        "--theme", choices=sorted(THEMES), default="dark",
        help="Initial colour theme (default: dark)",
    )
    parser.add_argument(
        "--log-file", type=Path, default=None, metavar="PATH",
        help="Write logs to PATH instead of the textual devtools console",
    )
    parser.add_argument(
        "--log-level", choices=LOG_LEVELS, default="WARNING", type=str.upper,
        help="Log level (default: WARNING)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> DashboardConfig:
    """Parse command-line flags into a DashboardConfig."""
    args = build_parser().parse_args(argv)
    return DashboardConfig(
        interval=args.interval,
        process_limit=args.process_limit,
        history_capacity=args.history_capacity,
        disk_path=args.disk_path,
        gpu=args.gpu,
        gpu_timeout=args.gpu_timeout,
        theme=args.theme,
        log_file=args.log_file,
        log_level=args.log_level,
    )


def configure_logging(config: DashboardConfig) -> None:
    """
    Route log records away from the terminal the dashboard is drawing on.

    With ``--log-file`` records go to that file. Otherwise they go to the
    textual devtools console (``textual console``) while the app runs, and to
    stderr before it starts.
    """
    if config.log_file is not None:
        handler: logging.Handler = logging.FileHandler(config.log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler = TextualHandler()
    logging.basicConfig(level=config.log_level, handlers=[handler], force=True)
