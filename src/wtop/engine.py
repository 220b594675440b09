"""Dashboard engine: state transitions, snapshot application and re-rendering."""

import logging
from enum import Enum
from queue import Empty, Queue

from rich.text import Text

from wtop.config import DashboardConfig
from wtop.errors import RefreshFailure, StartupFailure
from wtop.history import MetricHistories
from wtop.layout import Layout, LayoutCache
from wtop.models import Snapshot, SortMode
from wtop.monitor import MetricsProvider
from wtop.rates import compute_rates
from wtop.state import DashboardState
from wtop.themes import get_theme
from wtop.widgets import (
    PANELS,
    render_cpu,
    render_disk,
    render_footer,
    render_gpu,
    render_header,
    render_memory,
    render_processes,
)

logger = logging.getLogger(__name__)

# Rows taken by widget chrome outside the panels (the process table header
# is part of the processes panel itself).
_CHROME_ROWS = 1


class EngineState(Enum):
    """Lifecycle of the engine. There is no way back from STOPPED."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


Update = Snapshot | RefreshFailure


class DashboardEngine:
    """
    Single owner of the dashboard state.

    All methods are meant to be called from one thread (the UI loop). Fresh
    data arrives through ``apply``/``drain``; user actions re-render from the
    last applied snapshot without asking the provider for anything.
    """

    def __init__(self, provider: MetricsProvider, config: DashboardConfig | None = None) -> None:
        self.config = config or DashboardConfig()
        self.provider = provider
        self.state = DashboardState(
            theme=get_theme(self.config.theme),
            histories=MetricHistories(self.config.history_capacity),
            refresh_interval=self.config.interval,
        )
        self._engine_state = EngineState.IDLE
        self._layouts = LayoutCache()
        self._frame: dict[str, Text] = {}
        self._dirty: set[str] = set()

    @property
    def engine_state(self) -> EngineState:
        return self._engine_state

    @property
    def is_running(self) -> bool:
        return self._engine_state is EngineState.RUNNING

    @property
    def frame(self) -> dict[str, Text]:
        """Most recently rendered text of every panel."""
        return dict(self._frame)

    @property
    def layout(self) -> Layout:
        snap = self.state.last_snapshot
        core_count = snap.core_count if snap is not None else 0
        return self._layouts.get(self.state.width, self.state.height, core_count)

    @property
    def layout_recomputations(self) -> int:
        return self._layouts.recomputations

    def take_dirty(self) -> set[str]:
        """Return and clear the panels re-rendered since the last call."""
        dirty, self._dirty = self._dirty, set()
        return dirty

    def start(self) -> None:
        """
        Collect the first snapshot synchronously and enter RUNNING.

        Raises:
            StartupFailure: If the engine was already started or the provider
                cannot produce a baseline snapshot.
        """
        if self._engine_state is not EngineState.IDLE:
            raise StartupFailure(f"engine cannot start from state {self._engine_state.value}")
        try:
            snapshot = self.provider.collect_snapshot(self.config.process_limit)
        except Exception as exc:
            logger.error("Initial snapshot failed: %s", exc)
            raise StartupFailure(f"could not collect initial snapshot: {exc}") from exc

        self._engine_state = EngineState.RUNNING
        logger.info("Engine started on %s", snapshot.hostname or "unknown host")
        self._apply_snapshot(snapshot)

    def stop(self) -> None:
        if self._engine_state is not EngineState.STOPPED:
            logger.info("Engine stopped")
        self._engine_state = EngineState.STOPPED

    def apply(self, update: Update) -> bool:
        """
        Merge one producer result into the state.

        Returns True when a snapshot was applied. Results arriving while not
        RUNNING (e.g. after quit) are discarded.
        """
        if not self.is_running:
            return False
        if isinstance(update, RefreshFailure):
            logger.warning("Refresh failed: %s", update.message)
            self.state.status = f"refresh failed: {update.message}"
            self._render("footer")
            return False
        self._apply_snapshot(update)
        return True

    def drain(self, queue: Queue[Update]) -> int:
        """Apply every queued update in arrival order without blocking."""
        applied = 0
        while True:
            try:
                update = queue.get_nowait()
            except Empty:
                break
            if self.apply(update):
                applied += 1
        return applied

    def _apply_snapshot(self, snapshot: Snapshot) -> None:
        state = self.state
        state.rates = compute_rates(state.last_snapshot, snapshot)
        if state.rates.valid:
            state.last_valid_rates = state.rates
        state.histories.record(snapshot, state.rates)
        state.last_snapshot = snapshot
        state.status = ""
        self._render_all()

    def cycle_sort(self) -> SortMode:
        """Rotate CPU -> MEMORY -> TIME -> CPU and re-render the process table."""
        self.state.sort_mode = self.state.sort_mode.next()
        self._render("processes")
        return self.state.sort_mode

    def toggle_theme(self) -> str:
        """Swap the palette and re-render every panel from the last snapshot."""
        self.state.theme = self.state.theme.toggled()
        self._render_all()
        return self.state.theme.name

    def resize(self, width: int, height: int) -> None:
        """Adopt a new terminal size; the cached layout no longer applies."""
        self.state.width = width
        self.state.height = height
        self._layouts.invalidate()
        self._render_all()

    def _process_rows(self) -> int:
        """Table rows left once every other panel has taken its lines."""
        used = _CHROME_ROWS + 1  # table header
        for name in PANELS:
            if name != "processes" and name in self._frame:
                used += len(self._frame[name].plain.splitlines()) or 1
        return self.state.height - used

    def _render(self, *panels: str) -> None:
        layout = self.layout
        renderers = {
            "header": render_header,
            "cpu": render_cpu,
            "memory": render_memory,
            "disk": render_disk,
            "gpu": render_gpu,
            "footer": render_footer,
        }
        for name in panels:
            if name == "processes":
                text = render_processes(self.state, layout, self._process_rows())
            else:
                text = renderers[name](self.state, layout)
            self._frame[name] = text
            self._dirty.add(name)

    def _render_all(self) -> None:
        # Processes last: its row budget depends on the other panels' heights.
        self._render(*[name for name in PANELS if name != "processes"])
        self._render("processes")
