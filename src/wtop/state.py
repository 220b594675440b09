"""Dashboard state owned by the engine."""

from dataclasses import dataclass, field

from wtop.history import DEFAULT_CAPACITY, MetricHistories
from wtop.models import Snapshot, SortMode
from wtop.rates import INVALID_RATES, NetRates
from wtop.themes import DARK, Theme


@dataclass(slots=True)
class DashboardState:
    """
    Everything the renderer needs to rebuild a frame.

    Only the UI loop mutates this object; the producer thread never sees it.
    """

    theme: Theme = DARK
    histories: MetricHistories = field(
        default_factory=lambda: MetricHistories(DEFAULT_CAPACITY)
    )
    sort_mode: SortMode = SortMode.CPU
    last_snapshot: Snapshot | None = None
    rates: NetRates = INVALID_RATES
    last_valid_rates: NetRates = INVALID_RATES
    status: str = ""
    width: int = 80
    height: int = 24
    refresh_interval: float = 1.0
