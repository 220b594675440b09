"""Pure text renderers: usage bars, sparklines and value formatting.

Everything here maps values (and a width) to ``rich.text.Text`` with no I/O,
so a frame can be rebuilt from the same state any number of times and always
come out identical.
"""

import math
from collections.abc import Callable, Sequence

from rich.text import Text

from wtop.themes import DARK, Theme

BAR_MIN_WIDTH = 6
BAR_MAX_WIDTH = 60
BAR_FILL = "█"
BAR_EMPTY = "░"

SPARK_MIN_WIDTH = 4
SPARK_LEVELS = "▁▂▃▄▅▆▇█"
SPARK_PLACEHOLDER = "·"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


def render_bar(percent: float, width: int, theme: Theme = DARK) -> Text:
    """
    Render ``[████░░░░]  42.0%``.

    The interior is always exactly ``width`` cells after clamping width to
    [BAR_MIN_WIDTH, BAR_MAX_WIDTH]. Filled cells and the percentage use the
    band colour for ``percent``; empty cells are muted.
    """
    width = clamp(width, BAR_MIN_WIDTH, BAR_MAX_WIDTH)
    filled = clamp(round_half_up(percent / 100 * width), 0, width)
    style = theme.usage_style(percent)

    bar = Text("[", style=theme.border)
    bar.append(BAR_FILL * filled, style=style)
    bar.append(BAR_EMPTY * (width - filled), style=theme.muted)
    bar.append("]", style=theme.border)
    bar.append(f" {format_percent(percent)}", style=style)
    return bar


def downsample(series: Sequence[float], width: int) -> list[float]:
    """
    Fit a series into ``width`` slots.

    Longer series are split into ``width`` contiguous segments keeping each
    segment's maximum, so short spikes survive. Shorter series are left-padded
    with zeros so the newest sample sits in the rightmost slot.
    """
    n = len(series)
    if n > width:
        return [max(series[i * n // width : (i + 1) * n // width]) for i in range(width)]
    return [0.0] * (width - n) + list(series)


def render_spark(series: Sequence[float], width: int, theme: Theme = DARK) -> Text:
    """
    Render a sparkline scaled to the series' own maximum.

    An empty or all non-positive series renders as a flat row of placeholder
    glyphs, which keeps "no signal" distinguishable from a signal that only
    reaches the lowest level.
    """
    width = max(width, SPARK_MIN_WIDTH)
    peak = max(series, default=0.0)
    if peak <= 0:
        return Text(SPARK_PLACEHOLDER * width, style=theme.muted)

    spark = Text()
    for value in downsample(series, width):
        if value <= 0:
            spark.append(SPARK_PLACEHOLDER, style=theme.muted)
            continue
        ratio = min(value / peak, 1.0)
        level = min(int(ratio * len(SPARK_LEVELS)), len(SPARK_LEVELS) - 1)
        spark.append(SPARK_LEVELS[level], style=theme.usage_style(ratio * 100))
    return spark


def crop(line: Text, budget: int) -> Text:
    """Cut a line to ``budget`` cells, ending in an ellipsis when shortened."""
    if line.cell_len <= budget:
        return line
    cropped = line.copy()
    cropped.truncate(max(budget, 0), overflow="ellipsis")
    return cropped


def fit_line(build: Callable[[int], Text], budget: int, start: int, floor: int) -> Text:
    """
    Build a line whose rightmost flexible field starts at ``start`` cells.

    While the line is wider than ``budget`` the field shrinks one cell at a
    time down to ``floor``; anything still too wide after that is cropped.
    """
    size = max(start, floor)
    line = build(size)
    while line.cell_len > budget and size > floor:
        size -= 1
        line = build(size)
    return crop(line, budget)


def join_lines(lines: Sequence[Text]) -> Text:
    return Text("\n").join(lines)


def format_percent(value: float) -> str:
    return f"{value:5.1f}%"


def truncate_label(value: str, max_len: int) -> str:
    """Truncate a label with '...' if it is longer than max_len."""
    if len(value) <= max_len:
        return value
    if max_len <= 3:
        return value[:max_len]
    return value[: max_len - 3] + "..."


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_rate(bps: float) -> str:
    """Human-readable transfer rate."""
    if bps < 1024:
        return f"{bps:.0f} B/s"
    if bps < 1024 * 1024:
        return f"{bps / 1024:.1f} KB/s"
    if bps < 1024**3:
        return f"{bps / 1024 ** 2:.1f} MB/s"
    return f"{bps / 1024 ** 3:.1f} GB/s"


def format_uptime(uptime: float) -> str:
    days = int(uptime // 86400)
    hours = int((uptime % 86400) // 3600)
    minutes = int((uptime % 3600) // 60)
    seconds = int(uptime % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_runtime(seconds: float) -> str:
    """Compact process run time: ``MM:SS``, ``H:MM:SS`` or ``NdHHh``."""
    total = max(0, int(seconds))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    if days:
        return f"{days}d{hours:02d}h"
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
