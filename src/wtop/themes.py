"""Colour palettes and usage bands."""

from dataclasses import dataclass
from enum import Enum

LOW_BAND_LIMIT = 65.0
HIGH_BAND_LIMIT = 85.0


class Band(Enum):
    """Severity band of a percentage."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def band_for(percent: float) -> Band:
    if percent >= HIGH_BAND_LIMIT:
        return Band.HIGH
    if percent >= LOW_BAND_LIMIT:
        return Band.MEDIUM
    return Band.LOW


@dataclass(slots=True, frozen=True)
class Theme:
    """Named colour roles, as rich colour names."""

    name: str
    background: str
    foreground: str
    accent: str
    normal: str
    warning: str
    critical: str
    border: str
    muted: str

    @property
    def is_dark(self) -> bool:
        return self.name == "dark"

    def band_style(self, band: Band) -> str:
        if band is Band.HIGH:
            return self.critical
        if band is Band.MEDIUM:
            return self.warning
        return self.normal

    def usage_style(self, percent: float) -> str:
        return self.band_style(band_for(percent))

    def toggled(self) -> "Theme":
        """The other palette: dark <-> light."""
        return LIGHT if self.is_dark else DARK


DARK = Theme(
    name="dark",
    background="#101216",
    foreground="#d8dee9",
    accent="#5fd7ff",
    normal="#5fd75f",
    warning="#ffd75f",
    critical="#ff5f5f",
    border="#3b4252",
    muted="#6c7086",
)

LIGHT = Theme(
    name="light",
    background="#f5f5f5",
    foreground="#1e1e2e",
    accent="#005f87",
    normal="#008700",
    warning="#af5f00",
    critical="#d70000",
    border="#b0b0b0",
    muted="#8a8a8a",
)

THEMES: dict[str, Theme] = {theme.name: theme for theme in (DARK, LIGHT)}


def get_theme(name: str) -> Theme:
    """Look up a theme by name. Raises KeyError for unknown names."""
    return THEMES[name.lower()]
