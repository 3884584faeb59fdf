"""Application configuration and user settings.

Two things live here:

``AppConfig``
    Process-level knobs read once at startup from
    ``~/Library/Application Support/PrepTick/config.json``
    (``$PREPTICK_HOME/config.json`` when that variable is set).

``Settings``
    The user's alert preferences.  These are persisted by the store as
    the ``settings`` record, not in ``config.json``.

Usage::

    config = load_config()
    config.tick_interval_ms = 250
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path

logger = logging.getLogger(__name__)


def _app_support_dir() -> Path:
    override = os.environ.get("PREPTICK_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / "Library" / "Application Support" / "PrepTick"


APP_SUPPORT_DIR = _app_support_dir()
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"


# ── process config ────────────────────────────────────────────────────────


@dataclass
class AppConfig:
    """Startup configuration."""

    tick_interval_ms: int = 500
    grouping_window_seconds: int = 90
    log_level: str = "INFO"
    log_to_file: bool = True
    database_url: str | None = None        # None → SQLite in APP_SUPPORT_DIR


def load_config() -> AppConfig:
    """Load config from disk, falling back to defaults."""
    try:
        if CONFIG_PATH.exists():
            data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(AppConfig)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return AppConfig(**filtered)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_PATH, exc)
    return AppConfig()


def save_config(config: AppConfig) -> None:
    """Write config to disk as JSON."""
    APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(
        json.dumps(asdict(config), indent=2) + "\n",
        encoding="utf-8",
    )


# ── user settings ─────────────────────────────────────────────────────────


@dataclass
class Settings:
    """Alert preferences shown on the settings screen."""

    alerts_enabled: bool = True
    silent_mode_enabled: bool = False       # alert without sound

    def to_dict(self) -> dict:
        return {
            "alertsEnabled": self.alerts_enabled,
            "silentModeEnabled": self.silent_mode_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        """Decode a stored record.  Missing keys keep their defaults.

        ``notificationsEnabled`` is the older name of ``alertsEnabled``.
        """
        if not isinstance(data, dict):
            raise ValueError(f"not a settings record: {data!r}")
        defaults = cls()
        alerts = data.get("alertsEnabled", data.get("notificationsEnabled"))
        silent = data.get("silentModeEnabled")
        return cls(
            alerts_enabled=defaults.alerts_enabled if alerts is None else bool(alerts),
            silent_mode_enabled=(
                defaults.silent_mode_enabled if silent is None else bool(silent)
            ),
        )
