"""Timer package."""

from .models import (
    Category,
    Preset,
    RunningTimer,
    TimerState,
    LastSet,
    LastSetEntry,
    GROUPING_WINDOW_SECONDS,
    format_clock,
)
from .engine import TickDriver, DEFAULT_TICK_INTERVAL_MS

__all__ = [
    "Category",
    "Preset",
    "RunningTimer",
    "TimerState",
    "LastSet",
    "LastSetEntry",
    "GROUPING_WINDOW_SECONDS",
    "format_clock",
    "TickDriver",
    "DEFAULT_TICK_INTERVAL_MS",
]
