"""The timer store: single owner of presets, timers, settings and last-set.

Every mutation goes through a ``TimerStore`` method, runs on the Qt main
thread, persists the records it touched and then emits the matching
signal.  Operations on an id that no longer exists are silent no-ops; a
timer cleared by a reconcile pass a moment before a click arrives is an
ordinary event, not an error.

Records
-------
presets          ordered list of presets
runningTimers    ordered list of running/paused/done timers
settings         alert preferences
lastSet          the most recent batch of started presets
didSeedDefaults  set once the built-in presets were written
hasCompletedOnboarding
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError

from .database.db import KeyValueStore
from .defaults import seed_presets
from .notifications.scheduler import NotificationScheduler
from .settings import Settings
from .timer.models import (
    GROUPING_WINDOW_SECONDS,
    Category,
    LastSet,
    LastSetEntry,
    Preset,
    RunningTimer,
)

logger = logging.getLogger(__name__)

PRESETS_KEY = "presets"
RUNNING_TIMERS_KEY = "runningTimers"
SETTINGS_KEY = "settings"
LAST_SET_KEY = "lastSet"
DID_SEED_DEFAULTS_KEY = "didSeedDefaults"
ONBOARDING_KEY = "hasCompletedOnboarding"

_DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, OverflowError)


class TimerStore(QObject):
    """Authoritative timer state.

    Signals
    -------
    presets_changed()
    timers_changed()
    settings_changed()
    last_set_changed()
    """

    presets_changed = pyqtSignal()
    timers_changed = pyqtSignal()
    settings_changed = pyqtSignal()
    last_set_changed = pyqtSignal()

    def __init__(
        self,
        storage: KeyValueStore,
        scheduler: NotificationScheduler,
        parent: QObject | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        grouping_window_seconds: int = GROUPING_WINDOW_SECONDS,
    ) -> None:
        super().__init__(parent)
        self._storage = storage
        self._scheduler = scheduler
        self._clock = clock
        self._grouping_window = grouping_window_seconds

        self._presets: list[Preset] = []
        self._running_timers: list[RunningTimer] = []
        self._settings = Settings()
        self._last_set = LastSet(window_seconds=grouping_window_seconds)
        self._has_completed_onboarding = False

        self.load()

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    # Readers get copies; every change goes through a store method.

    @property
    def presets(self) -> list[Preset]:
        return [p.snapshot() for p in self._presets]

    @property
    def favorite_presets(self) -> list[Preset]:
        return [p.snapshot() for p in self._presets if p.is_favorite]

    def presets_in(self, category: Category) -> list[Preset]:
        return [p.snapshot() for p in self._presets if p.category is category]

    def preset(self, preset_id: str) -> Preset | None:
        preset = self._find_preset(preset_id)
        return preset.snapshot() if preset is not None else None

    @property
    def running_timers(self) -> list[RunningTimer]:
        return [t.snapshot() for t in self._running_timers]

    def timer(self, timer_id: str) -> RunningTimer | None:
        timer = self._find_timer(timer_id)
        return timer.snapshot() if timer is not None else None

    @property
    def settings(self) -> Settings:
        return replace(self._settings)

    @property
    def last_set(self) -> list[LastSetEntry]:
        return [e.snapshot() for e in self._last_set.entries]

    @property
    def has_completed_onboarding(self) -> bool:
        return self._has_completed_onboarding

    # ══════════════════════════════════════════════════════════════════
    #  LOAD / SAVE
    # ══════════════════════════════════════════════════════════════════

    def load(self) -> None:
        """Read every record, seeding the built-in presets on first run."""
        if not self._storage.load(DID_SEED_DEFAULTS_KEY, False):
            self._presets = seed_presets()
            self._write(PRESETS_KEY, [p.to_dict() for p in self._presets])
            self._write(DID_SEED_DEFAULTS_KEY, True)
            logger.info("Seeded %d default presets", len(self._presets))
        else:
            self._presets = self._load_list(PRESETS_KEY, Preset.from_dict)

        self._running_timers = self._load_list(RUNNING_TIMERS_KEY, RunningTimer.from_dict)
        self._settings = self._load_settings()
        self._last_set = self._load_last_set()
        self._has_completed_onboarding = bool(self._storage.load(ONBOARDING_KEY, False))

    def save(self) -> None:
        self._save(PRESETS_KEY, RUNNING_TIMERS_KEY, SETTINGS_KEY, LAST_SET_KEY)

    def _load_list(self, key: str, decode) -> list:
        raw = self._storage.load(key)
        if raw is None:
            return []
        try:
            if not isinstance(raw, list):
                raise TypeError(f"expected a list, got {type(raw).__name__}")
            return [decode(item) for item in raw]
        except _DECODE_ERRORS as exc:
            logger.warning("Discarding undecodable %r record: %s", key, exc)
            self._discard(key)
            return []

    def _load_settings(self) -> Settings:
        raw = self._storage.load(SETTINGS_KEY)
        if raw is None:
            return Settings()
        try:
            return Settings.from_dict(raw)
        except _DECODE_ERRORS as exc:
            logger.warning("Discarding undecodable settings record: %s", exc)
            self._discard(SETTINGS_KEY)
            return Settings()

    def _load_last_set(self) -> LastSet:
        raw = self._storage.load(LAST_SET_KEY)
        if raw is None:
            return LastSet(window_seconds=self._grouping_window)
        try:
            return LastSet.from_list(raw, window_seconds=self._grouping_window)
        except _DECODE_ERRORS as exc:
            logger.warning("Discarding undecodable last-set record: %s", exc)
            self._discard(LAST_SET_KEY)
            return LastSet(window_seconds=self._grouping_window)

    def _save(self, *keys: str) -> None:
        encoders = {
            PRESETS_KEY: lambda: [p.to_dict() for p in self._presets],
            RUNNING_TIMERS_KEY: lambda: [t.to_dict() for t in self._running_timers],
            SETTINGS_KEY: self._settings.to_dict,
            LAST_SET_KEY: self._last_set.to_list,
        }
        for key in keys:
            self._write(key, encoders[key]())

    def _write(self, key: str, value) -> None:
        try:
            self._storage.save(key, value)
        except SQLAlchemyError:
            # In-memory state stays authoritative; only persistence is lost.
            logger.exception("Could not persist %r", key)

    def _discard(self, key: str) -> None:
        try:
            self._storage.remove(key)
        except SQLAlchemyError:
            logger.exception("Could not remove %r", key)

    # ══════════════════════════════════════════════════════════════════
    #  RUNNING TIMERS
    # ══════════════════════════════════════════════════════════════════

    def start_preset(self, preset: Preset, now: datetime | None = None) -> RunningTimer | None:
        """Start a timer from ``preset``.  No-op for a non-positive duration."""
        now = now or self._clock()
        timer = RunningTimer.start(preset, now)
        if timer is None:
            logger.debug("Refusing to start %r with %ss", preset.name, preset.duration_seconds)
            return None

        self._running_timers.append(timer)
        self._last_set.record(preset, now)
        self._schedule(timer, now)
        self._save(RUNNING_TIMERS_KEY, LAST_SET_KEY)
        self.timers_changed.emit()
        self.last_set_changed.emit()
        return timer.snapshot()

    def repeat_last_set(self, now: datetime | None = None) -> list[RunningTimer]:
        """Replace the running timers with a fresh start of the last set.

        Each entry uses the live preset when it still exists and the
        stored snapshot otherwise.  Nothing is touched until every new
        timer has been built.
        """
        if not self._last_set:
            return []
        now = now or self._clock()

        timers: list[RunningTimer] = []
        entries: list[LastSetEntry] = []
        for entry in self._last_set.entries:
            preset = self._find_preset(entry.preset.id) or entry.preset
            timer = RunningTimer.start(preset, now)
            if timer is None:
                continue
            timers.append(timer)
            entries.append(LastSetEntry(preset=preset.snapshot(), set_at=now, id=entry.id))

        self._scheduler.cancel_all(t.id for t in self._running_timers)
        self._running_timers = timers
        if entries:
            self._last_set = LastSet(entries=entries, window_seconds=self._grouping_window)
        for timer in timers:
            self._schedule(timer, now)

        self._save(RUNNING_TIMERS_KEY, LAST_SET_KEY)
        self.timers_changed.emit()
        self.last_set_changed.emit()
        return [t.snapshot() for t in timers]

    def pause_timer(self, timer_id: str, now: datetime | None = None) -> None:
        timer = self._find_timer(timer_id)
        if timer is None:
            return
        if not timer.pause(now or self._clock()):
            return
        self._scheduler.cancel(timer.id)
        self._commit_timers()

    def resume_timer(self, timer_id: str, now: datetime | None = None) -> None:
        timer = self._find_timer(timer_id)
        if timer is None:
            return
        now = now or self._clock()
        if not timer.resume(now):
            return
        self._sync_alert(timer, now)
        self._commit_timers()

    def adjust_timer(self, timer_id: str, delta_seconds: int, now: datetime | None = None) -> None:
        timer = self._find_timer(timer_id)
        if timer is None:
            return
        now = now or self._clock()
        timer.adjust(delta_seconds, now)
        self._sync_alert(timer, now)
        self._commit_timers()

    def restart_timer(self, timer_id: str, now: datetime | None = None) -> None:
        timer = self._find_timer(timer_id)
        if timer is None:
            return
        now = now or self._clock()
        timer.restart(now)
        self._sync_alert(timer, now)
        self._commit_timers()

    def rename_timer(self, timer_id: str, name: str, now: datetime | None = None) -> None:
        timer = self._find_timer(timer_id)
        name = name.strip()
        if timer is None or not name:
            return
        timer.rename(name)
        if timer.is_running:
            self._schedule(timer, now or self._clock())
        self._commit_timers()

    def clear_timer(self, timer_id: str) -> None:
        timer = self._find_timer(timer_id)
        if timer is None:
            return
        self._scheduler.cancel(timer.id)
        self._running_timers.remove(timer)
        self._commit_timers()

    def clear_finished_timers(self) -> int:
        """Clear every DONE timer.  Returns how many were removed."""
        finished = [t for t in self._running_timers if t.is_done]
        if not finished:
            return 0
        self._scheduler.cancel_all(t.id for t in finished)
        self._running_timers = [t for t in self._running_timers if not t.is_done]
        self._commit_timers()
        return len(finished)

    def mark_timer_done(self, index: int, now: datetime, *, keep_end_at: bool = False) -> None:
        """Force the timer at ``index`` to DONE.  The caller persists."""
        if not 0 <= index < len(self._running_timers):
            return
        timer = self._running_timers[index]
        timer.mark_done(now, keep_end_at=keep_end_at)
        self._scheduler.cancel(timer.id)

    def reconcile_running_timers(self, now: datetime | None = None) -> bool:
        """Bring every timer in line with ``now``.

        Returns True (and persists) only when something changed, so
        calling it twice in a row is cheap and the second call is a no-op.
        """
        now = now or self._clock()
        changed = False
        for index, timer in enumerate(self._running_timers):
            if timer.is_expired(now):
                logger.info("Timer %r finished", timer.name)
                self.mark_timer_done(index, now, keep_end_at=timer.remaining_seconds(now) <= 0)
                changed = True
            elif timer.reconcile(now):
                changed = True

        if changed:
            self._commit_timers()
        return changed

    def handle_app_active(self, now: datetime | None = None) -> None:
        """Catch up after launch or after the app comes back to the front."""
        now = now or self._clock()
        self.reconcile_running_timers(now)
        self._scheduler.reconcile(self._running_timers)
        self._reschedule_all(now)

    # ══════════════════════════════════════════════════════════════════
    #  PRESETS
    # ══════════════════════════════════════════════════════════════════

    def toggle_favorite(self, preset_id: str) -> None:
        preset = self._find_preset(preset_id)
        if preset is None:
            return
        preset.is_favorite = not preset.is_favorite
        self._commit_presets()

    def add_preset(self, preset: Preset) -> None:
        self._presets.append(preset.snapshot())
        self._commit_presets()

    def update_preset(self, preset: Preset) -> None:
        for index, existing in enumerate(self._presets):
            if existing.id == preset.id:
                self._presets[index] = preset.snapshot()
                self._commit_presets()
                return

    def delete_preset(self, preset_id: str) -> None:
        remaining = [p for p in self._presets if p.id != preset_id]
        if len(remaining) == len(self._presets):
            return
        self._presets = remaining
        self._commit_presets()

    # ══════════════════════════════════════════════════════════════════
    #  SETTINGS
    # ══════════════════════════════════════════════════════════════════

    def update_alerts_enabled(self, enabled: bool) -> None:
        self._settings.alerts_enabled = enabled
        if enabled:
            self._scheduler.request_authorization()
            self._reschedule_all(self._clock())
        else:
            self._scheduler.cancel_all(t.id for t in self._running_timers)
        self._save(SETTINGS_KEY)
        self.settings_changed.emit()

    def update_silent_mode_enabled(self, enabled: bool) -> None:
        self._settings.silent_mode_enabled = enabled
        self._reschedule_all(self._clock())
        self._save(SETTINGS_KEY)
        self.settings_changed.emit()

    def complete_onboarding(self) -> None:
        self._has_completed_onboarding = True
        self._write(ONBOARDING_KEY, True)

    def reset_app_data(self, keeping_onboarding_seen: bool = True) -> None:
        """Wipe everything back to a first-launch state."""
        keep_onboarding = keeping_onboarding_seen and self._has_completed_onboarding

        self._scheduler.cancel_all(t.id for t in self._running_timers)
        self._scheduler.reconcile([])
        try:
            self._storage.clear()
        except SQLAlchemyError:
            logger.exception("Could not erase stored records")

        self._presets = seed_presets()
        self._running_timers = []
        self._settings = Settings()
        self._last_set = LastSet(window_seconds=self._grouping_window)
        self.save()
        self._write(DID_SEED_DEFAULTS_KEY, True)
        self._has_completed_onboarding = keep_onboarding
        if keep_onboarding:
            self._write(ONBOARDING_KEY, True)
        logger.info("App data reset (onboarding kept: %s)", keep_onboarding)

        self.presets_changed.emit()
        self.timers_changed.emit()
        self.settings_changed.emit()
        self.last_set_changed.emit()

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _find_preset(self, preset_id: str) -> Preset | None:
        return next((p for p in self._presets if p.id == preset_id), None)

    def _find_timer(self, timer_id: str) -> RunningTimer | None:
        return next((t for t in self._running_timers if t.id == timer_id), None)

    def _schedule(self, timer: RunningTimer, now: datetime) -> None:
        self._scheduler.schedule(
            timer,
            self._settings.alerts_enabled,
            self._settings.silent_mode_enabled,
            now,
        )

    def _sync_alert(self, timer: RunningTimer, now: datetime) -> None:
        if timer.is_running:
            self._schedule(timer, now)
        else:
            self._scheduler.cancel(timer.id)

    def _reschedule_all(self, now: datetime) -> None:
        for timer in self._running_timers:
            if timer.is_running:
                self._schedule(timer, now)

    def _commit_timers(self) -> None:
        self._save(RUNNING_TIMERS_KEY)
        self.timers_changed.emit()

    def _commit_presets(self) -> None:
        self._save(PRESETS_KEY)
        self.presets_changed.emit()
