"""Panel text for each dashboard widget.

Each ``render_*`` function is pure: it reads a DashboardState and a Layout and
returns the panel as ``rich.text.Text``. Absent metrics render an explicit
placeholder line instead of breaking the rest of the panel.
"""

from rich.text import Text

from wtop.layout import COMMAND_MIN_WIDTH, PROCESS_COLUMNS, Column, Layout
from wtop.models import GPUInfo, GPUProcess, ProcessSnapshot, Snapshot, SortMode, sort_processes
from wtop.render import (
    BAR_MIN_WIDTH,
    SPARK_MIN_WIDTH,
    crop,
    fit_line,
    format_bytes,
    format_rate,
    format_runtime,
    format_uptime,
    join_lines,
    render_bar,
    render_spark,
    truncate_label,
)
from wtop.state import DashboardState
from wtop.themes import Theme

PANELS = ("header", "cpu", "memory", "disk", "gpu", "processes", "footer")

SORT_COLUMNS = {SortMode.CPU: "cpu", SortMode.MEMORY: "mem", SortMode.TIME: "time"}
SORT_MARKER = "▼"

MIN_PROCESS_ROWS = 5
GPU_PROCESS_NAME_WIDTH = 25


def _placeholder(message: str, theme: Theme) -> Text:
    return Text(message, style=theme.muted)


def _bytes(value: float) -> str:
    return format_bytes(value).strip()


def _runtime(now: float, create_time: float) -> str:
    # create_time of 0 means psutil could not read it
    if create_time <= 0:
        return "-"
    return format_runtime(now - create_time)


def _usage_line(
    label: str,
    percent: float,
    detail: str,
    history: list[float] | None,
    state: DashboardState,
    layout: Layout,
) -> Text:
    """``label [bar] pct detail spark``, shrinking the sparkline (or bar) to fit."""
    theme = state.theme

    def build_with_spark(size: int) -> Text:
        line = Text(f"{label} ", style=theme.foreground)
        line.append_text(render_bar(percent, layout.summary_bar_width, theme))
        if detail:
            line.append(f" {detail}", style=theme.muted)
        line.append("  ")
        line.append_text(render_spark(history, size, theme))
        return line

    def build_without_spark(size: int) -> Text:
        line = Text(f"{label} ", style=theme.foreground)
        line.append_text(render_bar(percent, size, theme))
        if detail:
            line.append(f" {detail}", style=theme.muted)
        return line

    if layout.show_sparklines and history is not None:
        return fit_line(build_with_spark, layout.width, layout.spark_width, SPARK_MIN_WIDTH)
    return fit_line(build_without_spark, layout.width, layout.summary_bar_width, BAR_MIN_WIDTH)


def render_header(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    snap = state.last_snapshot
    if snap is None:
        return _placeholder("collecting metrics...", theme)

    summary = snap.process_summary
    first = Text(snap.hostname.strip() or "unknown", style=f"bold {theme.accent}")
    first.append(f"  up {format_uptime(snap.uptime_seconds)}", style=theme.foreground)
    first.append(f"  tasks {summary.running}/{summary.total}", style=theme.foreground)
    if snap.load_avg.reported:
        load = snap.load_avg
        first.append(
            f"  load {load.load1:.2f} {load.load5:.2f} {load.load15:.2f}",
            style=theme.foreground,
        )
    else:
        first.append("  load n/a", style=theme.muted)

    rates = state.rates if state.rates.valid else state.last_valid_rates
    if not rates.valid:
        second = Text("NET collecting...", style=theme.muted)
    else:
        histories = state.histories

        def build(size: int) -> Text:
            line = Text("NET ", style=theme.foreground)
            line.append(f"↑ {format_rate(rates.up):>10}", style=theme.accent)
            if layout.show_sparklines:
                line.append(" ")
                line.append_text(render_spark(histories.net_up.series(), size, theme))
            line.append(f"  ↓ {format_rate(rates.down):>10}", style=theme.accent)
            if layout.show_sparklines:
                line.append(" ")
                line.append_text(render_spark(histories.net_down.series(), size, theme))
            return line

        second = fit_line(build, layout.width, layout.spark_width, SPARK_MIN_WIDTH)

    return join_lines([crop(first, layout.width), second])


def _core_row(
    cores: tuple[float, ...], start: int, state: DashboardState, layout: Layout
) -> Text:
    theme = state.theme
    indices = range(start, min(start + layout.cores_per_row, len(cores)))

    def build(size: int) -> Text:
        row = Text()
        for position, idx in enumerate(indices):
            if position:
                row.append("  ")
            row.append(f"C{idx + 1:02d} ", style=theme.accent)
            row.append_text(render_bar(cores[idx], size, theme))
        return row

    return fit_line(build, layout.width, layout.bar_width, BAR_MIN_WIDTH)


def render_cpu(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    snap = state.last_snapshot
    if snap is None or not snap.cpu_percent_per_core:
        return Text("CPU metrics unavailable", style=theme.warning)

    lines = [
        _usage_line(
            "Total", snap.cpu_total, "", state.histories.cpu.series(), state, layout
        )
    ]
    cores = snap.cpu_percent_per_core
    for start in range(0, len(cores), layout.cores_per_row):
        lines.append(_core_row(cores, start, state, layout))
    return join_lines(lines)


def render_memory(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    snap = state.last_snapshot
    if snap is None or not snap.memory.present:
        return Text("Memory metrics unavailable", style=theme.warning)

    mem = snap.memory
    lines = [
        _usage_line(
            "Mem ",
            mem.used_percent,
            f"{_bytes(mem.used)}/{_bytes(mem.total)}",
            state.histories.memory.series(),
            state,
            layout,
        )
    ]

    details = []
    if mem.available > 0:
        details.append(f"avail {_bytes(mem.available)}")
    if mem.cached > 0:
        details.append(f"cached {_bytes(mem.cached)}")
    if mem.buffers > 0:
        details.append(f"buffers {_bytes(mem.buffers)}")
    if details:
        lines.append(crop(Text("     " + "  ".join(details), style=theme.muted), layout.width))

    summary = snap.process_summary
    if summary.total > 0:
        lines.append(
            crop(
                Text(
                    f"     tasks {summary.total}  threads {summary.threads}"
                    f"  running {summary.running}",
                    style=theme.muted,
                ),
                layout.width,
            )
        )
    return join_lines(lines)


def render_disk(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    snap = state.last_snapshot
    if snap is None:
        return _placeholder("Disk: unavailable", theme)

    lines = []
    swap = snap.swap
    if swap.present:
        lines.append(
            _usage_line(
                "Swap",
                swap.used_percent,
                f"{_bytes(swap.used)}/{_bytes(swap.total)}",
                state.histories.swap.series(),
                state,
                layout,
            )
        )
    else:
        lines.append(_placeholder("Swap: none", theme))

    disk = snap.disk
    if disk is not None and disk.present:
        lines.append(
            _usage_line(
                "Disk",
                disk.percent,
                f"{_bytes(disk.used)}/{_bytes(disk.total)} ({disk.path})",
                state.histories.disk.series(),
                state,
                layout,
            )
        )
    else:
        lines.append(_placeholder("Disk: unavailable", theme))
    return join_lines(lines)


def format_throttle(reasons: tuple[str, ...]) -> str:
    """Throttle reasons worth showing; idle and 'None' are not throttling."""
    shown = [r.strip() for r in reasons if r.strip() and r.strip() not in ("None", "GPU Idle")]
    return ", ".join(shown)


def _gpu_processes(procs: tuple[GPUProcess, ...], theme: Theme) -> list[Text]:
    lines = [
        Text(f"    {'PID':<7} {'Process':<{GPU_PROCESS_NAME_WIDTH}} {'Type':<8} {'Mem':>8}",
             style=f"bold {theme.accent}")
    ]
    total = 0.0
    for proc in procs:
        total += proc.memory_used
        name = truncate_label(proc.name, GPU_PROCESS_NAME_WIDTH)
        kind = proc.kind.strip() or "Compute"
        lines.append(
            Text(
                f"    {proc.pid:<7} {name:<{GPU_PROCESS_NAME_WIDTH}} {kind:<8} {proc.memory_used:>6.0f}MB",
                style=theme.foreground,
            )
        )
    lines.append(Text(f"    Processes: {len(procs)}  Total GPU Mem: {total:.0f}MB", style=theme.muted))
    return lines


def _gpu_lines(gpu: GPUInfo, snap: Snapshot, state: DashboardState, layout: Layout) -> list[Text]:
    theme = state.theme
    driver = gpu.driver.strip() or "Unknown"
    head = Text(f"[{gpu.index}] {gpu.name}", style=f"bold {theme.accent}")
    head.append(f"  driver {driver}", style=theme.muted)
    if gpu.pstate:
        head.append(f"  {gpu.pstate}", style=theme.muted)

    history = state.histories.gpu.get(gpu.index)
    lines = [
        head,
        _usage_line(
            "GPU ",
            gpu.utilization,
            "",
            history.series() if history is not None else [],
            state,
            layout,
        ),
        _usage_line(
            "VRAM",
            gpu.memory_percent,
            f"{gpu.memory_used / 1024:.1f}G/{gpu.memory_total / 1024:.1f}G",
            None,
            state,
            layout,
        ),
    ]

    vitals = [f"Temp {gpu.temperature:.0f}°C"]
    if gpu.power_limit > 0:
        vitals.append(f"Power {gpu.power_draw:.1f}/{gpu.power_limit:.0f}W")
    elif gpu.power_draw > 0:
        vitals.append(f"Power {gpu.power_draw:.1f}W")
    if gpu.fan_rpm > 0:
        vitals.append(f"Fan {gpu.fan_speed:.0f}% ({gpu.fan_rpm} RPM)")
    elif gpu.fan_speed > 0:
        vitals.append(f"Fan {gpu.fan_speed:.0f}%")
    lines.append(Text("     " + "  ".join(vitals), style=theme.usage_style(gpu.temperature)))

    clocks = []
    if gpu.clock_core > 0:
        clocks.append(f"core {gpu.clock_core}MHz")
    if gpu.clock_memory > 0:
        clocks.append(f"mem {gpu.clock_memory}MHz")
    if gpu.clock_sm > 0:
        clocks.append(f"sm {gpu.clock_sm}MHz")
    if clocks:
        lines.append(Text("     Clocks " + "  ".join(clocks), style=theme.muted))

    throttle = format_throttle(gpu.throttle_reasons)
    if throttle:
        lines.append(Text(f"     Throttle: {throttle}", style=theme.warning))
    else:
        lines.append(Text("     Throttle: none", style=theme.muted))

    procs = snap.gpu_processes.get(gpu.index, ())
    if procs:
        lines.extend(_gpu_processes(procs, theme))
    return [crop(line, layout.width) for line in lines]


def render_gpu(state: DashboardState, layout: Layout) -> Text:
    snap = state.last_snapshot
    if snap is None or not snap.gpu_present:
        return _placeholder("No discrete GPU detected", state.theme)

    lines: list[Text] = []
    for gpu in snap.gpus:
        lines.extend(_gpu_lines(gpu, snap, state, layout))
    return join_lines(lines)


def _gpu_attachments(snap: Snapshot) -> dict[int, tuple[int, float]]:
    """PID -> (GPU index, MiB used) for every process attached to a GPU."""
    attached: dict[int, tuple[int, float]] = {}
    for index, procs in snap.gpu_processes.items():
        for proc in procs:
            attached[proc.pid] = (index, proc.memory_used)
    return attached


def _cell(column: Column, value: str, width: int | None = None) -> str:
    width = column.width if width is None else width
    value = truncate_label(value, width)
    if column.align == "left":
        return f"{value:<{width}}"
    return f"{value:>{width}}"


def _table_header(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    sorted_key = SORT_COLUMNS[state.sort_mode]
    header = Text()
    for position, key in enumerate(layout.process_columns):
        column = PROCESS_COLUMNS[key]
        if position:
            header.append(" ")
        title = column.header + (SORT_MARKER if key == sorted_key else "")
        if key == "command":
            header.append(title, style=f"bold {theme.accent}")
        else:
            header.append(_cell(column, title), style=f"bold {theme.accent}")
    return crop(header, layout.width)


def _process_row(
    proc: ProcessSnapshot,
    snap: Snapshot,
    attached: dict[int, tuple[int, float]],
    state: DashboardState,
    layout: Layout,
) -> Text:
    theme = state.theme
    gpu = attached.get(proc.pid)
    values = {
        "pid": (str(proc.pid), theme.foreground),
        "user": (proc.username, theme.foreground),
        "cpu": (f"{proc.cpu_percent:5.1f}", theme.usage_style(proc.cpu_percent)),
        "mem": (f"{proc.memory_percent:5.1f}", theme.usage_style(proc.memory_percent)),
        "gpu": (f"G{gpu[0]}:{gpu[1]:.0f}MB" if gpu else "", theme.accent),
        "status": (proc.status, theme.muted),
        "threads": (str(proc.threads), theme.foreground),
        "priority": (str(proc.priority), theme.foreground),
        "nice": (str(proc.nice), theme.foreground),
        "virt": (_bytes(proc.memory_vms), theme.muted),
        "res": (_bytes(proc.memory_rss), theme.muted),
        "time": (_runtime(snap.timestamp, proc.create_time), theme.muted),
        "command": (proc.command_line or proc.name, theme.foreground),
    }

    def build(size: int) -> Text:
        row = Text()
        for position, key in enumerate(layout.process_columns):
            column = PROCESS_COLUMNS[key]
            value, style = values[key]
            if position:
                row.append(" ")
            if key == "command":
                row.append(truncate_label(value, size), style=style)
            else:
                row.append(_cell(column, value), style=style)
        return row

    return fit_line(build, layout.width, layout.command_width, COMMAND_MIN_WIDTH)


def render_processes(state: DashboardState, layout: Layout, max_rows: int | None = None) -> Text:
    """Render the process table, sorted by the current sort mode."""
    theme = state.theme
    snap = state.last_snapshot
    header = _table_header(state, layout)
    if snap is None or not snap.processes:
        return join_lines([header, Text("no process data available", style=theme.warning)])

    rows = sort_processes(snap.processes, state.sort_mode)
    if max_rows is not None:
        rows = rows[: max(max_rows, MIN_PROCESS_ROWS)]
    attached = _gpu_attachments(snap)
    return join_lines([header] + [_process_row(p, snap, attached, state, layout) for p in rows])


def render_footer(state: DashboardState, layout: Layout) -> Text:
    theme = state.theme
    keys = Text()
    for key, action in (("q", "Quit"), ("s", "Sort"), ("t", "Theme")):
        if keys.plain:
            keys.append("  ")
        keys.append(key, style=f"bold {theme.accent}")
        keys.append(f" {action}", style=theme.foreground)

    parts = [
        f"Refresh {state.refresh_interval:g}s",
        f"Theme {state.theme.name.title()}",
    ]
    snap = state.last_snapshot
    if snap is not None:
        parts.append(f"Tasks {snap.process_summary.total}")
        if snap.memory.present:
            parts.append(f"Mem {snap.memory.used_percent:.1f}%")

    rates = state.rates if state.rates.valid else state.last_valid_rates
    if rates.valid:
        parts.append(f"Net {format_rate(rates.up)} ↑ {format_rate(rates.down)} ↓")

    status = Text("  ".join(parts), style=theme.muted)
    if state.status:
        status.append(f"  {state.status}", style=f"bold {theme.warning}")
    return join_lines([crop(keys, layout.width), crop(status, layout.width)])
