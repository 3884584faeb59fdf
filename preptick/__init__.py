"""PrepTick: kitchen timers with local alerts."""

__version__ = "0.1.0"
