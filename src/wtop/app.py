"""wtop - Main Textual application."""

import logging
import sys
from collections.abc import Sequence
from queue import Queue

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from wtop.config import DashboardConfig, configure_logging, parse_args
from wtop.engine import DashboardEngine, Update
from wtop.errors import StartupFailure
from wtop.gpu import NvidiaSmi
from wtop.monitor import PsutilProvider, SystemMonitor
from wtop.widgets import PANELS

logger = logging.getLogger(__name__)

# How often the UI loop drains producer results (seconds).
DRAIN_INTERVAL = 0.1
# Quit never waits longer than this for a collection in flight.
QUIT_JOIN_TIMEOUT = 0.5


class WtopApp(App):
    """Main wtop application."""

    TITLE = "wtop"
    SUB_TITLE = "Terminal System Dashboard"

    CSS = """
    Screen {
        layout: vertical;
        overflow: hidden;
    }

    Static {
        height: auto;
        width: 100%;
    }

    #processes {
        height: 1fr;
    }

    #footer {
        dock: bottom;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "sort", "Sort"),
        ("t", "toggle_theme", "Theme"),
    ]

    def __init__(
        self,
        engine: DashboardEngine,
        monitor: SystemMonitor,
        update_queue: "Queue[Update]",
    ) -> None:
        """
        Initialize the WtopApp.

        Args:
            engine: Started engine holding the baseline snapshot.
            monitor: Producer feeding ``update_queue``; started on mount.
            update_queue: Hand-off between the producer thread and the UI loop.
        """
        super().__init__()
        self.engine = engine
        self.monitor = monitor
        self._update_queue = update_queue

    def compose(self) -> ComposeResult:
        """One Static per dashboard panel."""
        for name in PANELS:
            yield Static(id=name)

    def on_mount(self) -> None:
        """Paint the first frame and start the monitor."""
        self.engine.resize(self.size.width, self.size.height)
        self._apply_theme()
        self._push_frame()
        self.monitor.start()
        self.set_interval(DRAIN_INTERVAL, self._check_for_updates)

    def on_resize(self, event: events.Resize) -> None:
        self.engine.resize(event.size.width, event.size.height)
        self._push_frame()

    def _check_for_updates(self) -> None:
        """Apply queued updates and refresh the panels they changed."""
        self.engine.drain(self._update_queue)
        self._push_frame()

    def _push_frame(self) -> None:
        frame = self.engine.frame
        for name in self.engine.take_dirty():
            self.query_one(f"#{name}", Static).update(frame[name])

    def _apply_theme(self) -> None:
        theme = self.engine.state.theme
        self.screen.styles.background = theme.background
        self.screen.styles.color = theme.foreground

    def action_sort(self) -> None:
        """Cycle the process ordering: CPU -> MEM -> TIME."""
        mode = self.engine.cycle_sort()
        self._push_frame()
        self.notify(f"Sort: {mode.label}")

    def action_toggle_theme(self) -> None:
        name = self.engine.toggle_theme()
        self._apply_theme()
        self._push_frame()
        logger.debug("Theme switched to %s", name)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self.monitor.stop(timeout=QUIT_JOIN_TIMEOUT)
        self.engine.stop()
        self.exit()


def build_engine(config: DashboardConfig) -> DashboardEngine:
    gpu_reader = (
        NvidiaSmi(timeout=config.gpu_timeout, process_cap=config.gpu_process_cap)
        if config.gpu
        else None
    )
    provider = PsutilProvider(disk_path=config.disk_path, gpu_reader=gpu_reader)
    return DashboardEngine(provider, config)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the wtop command. Returns the process exit code."""
    config = parse_args(argv)
    configure_logging(config)

    if not sys.stdout.isatty():
        print("wtop: standard output is not a terminal", file=sys.stderr)
        return 1

    engine = build_engine(config)
    try:
        engine.start()
    except StartupFailure as e:
        print(f"wtop: {e}", file=sys.stderr)
        return 1

    update_queue: "Queue[Update]" = Queue()
    monitor = SystemMonitor(
        engine.provider,
        update_queue,
        poll_rate=config.interval,
        limit=config.process_limit,
    )
    app = WtopApp(engine, monitor, update_queue)
    try:
        app.run()
    finally:
        monitor.stop(timeout=QUIT_JOIN_TIMEOUT)
        engine.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
