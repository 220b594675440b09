"""Width-driven layout decisions.

Breakpoint tables are ordered ``(min_width, value)`` pairs evaluated top-down,
kept apart from any widget code so they can be tested without a terminal.
"""

import logging
from dataclasses import dataclass

from wtop.render import BAR_MAX_WIDTH, BAR_MIN_WIDTH, clamp

logger = logging.getLogger(__name__)

# Terminal width -> CPU cores rendered per row. First match wins.
CORE_BREAKPOINTS: tuple[tuple[int, int], ...] = (
    (120, 4),
    (90, 3),
    (60, 2),
    (0, 1),
)

# "C01 " label, "[" and "]", " 100.0%" suffix and the two-space gap.
CORE_LABEL_OVERHEAD = 15

# Optional process columns, each enabled from its own minimum width.
PROCESS_COLUMN_BREAKPOINTS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (90, ("threads",)),
    (100, ("gpu",)),
    (110, ("priority",)),
    (120, ("nice",)),
    (140, ("virt", "res")),
)

COMMAND_MIN_WIDTH = 16


@dataclass(slots=True, frozen=True)
class Column:
    """A process table column of fixed width."""

    key: str
    header: str
    width: int
    align: str = "right"


PROCESS_COLUMNS: dict[str, Column] = {
    column.key: column
    for column in (
        Column("pid", "PID", 7),
        Column("user", "USER", 10, "left"),
        Column("cpu", "CPU%", 6),
        Column("mem", "MEM%", 6),
        Column("gpu", "GPU", 9),
        Column("status", "S", 1, "left"),
        Column("threads", "THR", 4),
        Column("priority", "PRI", 4),
        Column("nice", "NI", 4),
        Column("virt", "VIRT", 6),
        Column("res", "RES", 6),
        Column("time", "TIME", 8),
        Column("command", "COMMAND", COMMAND_MIN_WIDTH, "left"),
    )
}

# Display order; optional columns are dropped when their breakpoint is not met.
COLUMN_ORDER = (
    "pid", "user", "cpu", "mem", "gpu", "status", "threads",
    "priority", "nice", "virt", "res", "time", "command",
)
OPTIONAL_COLUMNS = frozenset(
    key for _, keys in PROCESS_COLUMN_BREAKPOINTS for key in keys
)


@dataclass(slots=True, frozen=True)
class Layout:
    """Every width-dependent rendering decision for one terminal size."""

    width: int
    height: int
    cores_per_row: int
    bar_width: int
    summary_bar_width: int
    spark_width: int
    show_sparklines: bool
    process_columns: tuple[str, ...]
    command_width: int


def cores_per_row(width: int, core_count: int) -> int:
    """Pick cores per row from CORE_BREAKPOINTS, capped to the core count."""
    columns = 1
    for min_width, value in CORE_BREAKPOINTS:
        if width >= min_width:
            columns = value
            break
    return max(1, min(columns, core_count))


def core_bar_width(width: int, columns: int) -> int:
    return clamp(width // max(columns, 1) - CORE_LABEL_OVERHEAD, BAR_MIN_WIDTH, BAR_MAX_WIDTH)


def process_columns(width: int) -> tuple[str, ...]:
    enabled = set()
    for min_width, keys in PROCESS_COLUMN_BREAKPOINTS:
        if width >= min_width:
            enabled.update(keys)
    return tuple(
        key for key in COLUMN_ORDER if key not in OPTIONAL_COLUMNS or key in enabled
    )


def command_width(width: int, columns: tuple[str, ...]) -> int:
    """Width left for COMMAND once every other column and gap is placed."""
    fixed = sum(PROCESS_COLUMNS[key].width for key in columns if key != "command")
    gaps = len(columns) - 1
    return max(COMMAND_MIN_WIDTH, width - fixed - gaps)


def choose_layout(width: int, height: int, core_count: int) -> Layout:
    """Derive the layout for a terminal of ``width`` x ``height``."""
    width = max(width, 1)
    columns = cores_per_row(width, core_count)
    table_columns = process_columns(width)
    return Layout(
        width=width,
        height=height,
        cores_per_row=columns,
        bar_width=core_bar_width(width, columns),
        summary_bar_width=clamp(width // 3, 12, 40),
        spark_width=clamp(width // 4, 8, 40),
        show_sparklines=width >= 60,
        process_columns=table_columns,
        command_width=command_width(width, table_columns),
    )


class LayoutCache:
    """Memoises the layout until the width (or core count) changes."""

    def __init__(self) -> None:
        self._layout: Layout | None = None
        self._core_count = 0
        self.recomputations = 0

    def get(self, width: int, height: int, core_count: int) -> Layout:
        cached = self._layout
        if cached is None or cached.width != width or self._core_count != core_count:
            self._layout = choose_layout(width, height, core_count)
            self._core_count = core_count
            self.recomputations += 1
            logger.debug("Layout recomputed for %dx%d: %s", width, height, self._layout)
        return self._layout

    def invalidate(self) -> None:
        self._layout = None
