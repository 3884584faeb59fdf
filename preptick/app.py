"""System-tray shell for PrepTick.

The tray menu is the whole UI: start a favorite, repeat the last set,
and pause / resume / nudge / clear whatever is running.  All state lives
in the ``TimerStore``; this module only reads it and forwards intents.
"""

from __future__ import annotations

from datetime import datetime

from PyQt6.QtCore import QObject, Qt
from PyQt6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from .store import TimerStore
from .timer.engine import TickDriver
from .timer.models import RunningTimer, TimerState, format_clock

ADJUST_STEP_SECONDS = 60


# ── tray‑icon image generation ────────────────────────────────────────────


def _make_tray_icon(state: TimerState | None) -> QIcon:
    """Generate a monochrome template icon for the menu bar.

    - None (nothing running):  thin circle outline
    - RUNNING:                 filled circle
    - PAUSED:                  two vertical pause bars
    - DONE:                    circle outline with a centre dot
    """
    size = 64  # draw at 2× for Retina
    img = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(Qt.GlobalColor.transparent)
    p = QPainter(img)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    colour = QColor(0, 0, 0, 220)
    p.setPen(Qt.PenStyle.NoPen)
    p.setBrush(colour)

    cx, cy, r = size // 2, size // 2, size // 2 - 4

    if state is TimerState.RUNNING:
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
    elif state is TimerState.PAUSED:
        bar_w, bar_h = 8, 28
        gap = 6
        y = cy - bar_h // 2
        p.drawRoundedRect(cx - gap - bar_w, y, bar_w, bar_h, 3, 3)
        p.drawRoundedRect(cx + gap, y, bar_w, bar_h, 3, 3)
    else:
        p.setPen(QPen(colour, 4))
        p.setBrush(Qt.BrushStyle.NoBrush)
        p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
        if state is TimerState.DONE:
            p.setPen(Qt.PenStyle.NoPen)
            p.setBrush(colour)
            dot_r = 6
            p.drawEllipse(cx - dot_r, cy - dot_r, dot_r * 2, dot_r * 2)

    p.end()

    img.setDevicePixelRatio(2.0)
    return QIcon(QPixmap.fromImage(img))


def tray_state(timers: list[RunningTimer]) -> TimerState | None:
    """The state the icon shows: any running wins, then done, then paused."""
    states = {t.state for t in timers}
    for state in (TimerState.RUNNING, TimerState.DONE, TimerState.PAUSED):
        if state in states:
            return state
    return None


def timer_label(timer: RunningTimer, now: datetime) -> str:
    if timer.is_done:
        return f"{timer.name} — done"
    clock = format_clock(timer.remaining_seconds(now))
    if timer.is_paused:
        return f"{timer.name} — {clock} (paused)"
    return f"{timer.name} — {clock}"


class PrepTickTray(QObject):
    """Tray icon + menu bound to a store and a tick driver."""

    def __init__(
        self,
        store: TimerStore,
        tick_driver: TickDriver,
        tray_icon: QSystemTrayIcon,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._tick_driver = tick_driver
        self._tray_icon = tray_icon
        self._menu = QMenu()
        self._icon_state: TimerState | None = None
        self._submenus: list[QMenu] = []

        self._tray_icon.setIcon(_make_tray_icon(None))
        self._tray_icon.setContextMenu(self._menu)

        # ── wire signals ──────────────────────────────────────────────
        self._store.presets_changed.connect(self.rebuild_menu)
        self._store.timers_changed.connect(self.rebuild_menu)
        self._store.settings_changed.connect(self.rebuild_menu)
        self._store.last_set_changed.connect(self.rebuild_menu)
        self._tick_driver.now_changed.connect(self._on_now_changed)

        self.rebuild_menu()
        self._on_now_changed(self._tick_driver.now)

    @property
    def menu(self) -> QMenu:
        return self._menu

    def show(self) -> None:
        self._tray_icon.show()

    # ══════════════════════════════════════════════════════════════════
    #  MENU
    # ══════════════════════════════════════════════════════════════════

    def rebuild_menu(self) -> None:
        menu = self._menu
        self._clear_menu()
        now = self._tick_driver.now

        favorites = self._store.favorite_presets
        if favorites:
            menu.addSection("Favorites")
            for preset in favorites:
                action = menu.addAction(f"{preset.name} ({preset.formatted_duration})")
                action.setEnabled(preset.can_start)
                action.triggered.connect(
                    lambda _checked=False, p=preset: self._store.start_preset(p)
                )

        last_set = self._store.last_set
        repeat = menu.addAction(f"Repeat last set ({len(last_set)})")
        repeat.setEnabled(bool(last_set))
        repeat.triggered.connect(lambda _checked=False: self._store.repeat_last_set())

        timers = self._store.running_timers
        if timers:
            menu.addSection("Timers")
            for timer in timers:
                self._add_timer_menu(timer, now)
            clear_done = menu.addAction("Clear finished")
            clear_done.setEnabled(any(t.is_done for t in timers))
            clear_done.triggered.connect(
                lambda _checked=False: self._store.clear_finished_timers()
            )

        menu.addSeparator()
        settings = self._store.settings
        alerts = menu.addAction("Timer alerts")
        alerts.setCheckable(True)
        alerts.setChecked(settings.alerts_enabled)
        alerts.toggled.connect(self._store.update_alerts_enabled)

        silent = menu.addAction("Silent mode")
        silent.setCheckable(True)
        silent.setChecked(settings.silent_mode_enabled)
        silent.setEnabled(settings.alerts_enabled)
        silent.toggled.connect(self._store.update_silent_mode_enabled)

        menu.addSeparator()
        quit_action = menu.addAction("Quit")
        quit_action.triggered.connect(self._quit_app)

        self._update_icon(timers)

    def _clear_menu(self) -> None:
        # actions may be mid-emission (a menu click that changed the store)
        for action in self._menu.actions():
            self._menu.removeAction(action)
            if action.parent() is self._menu:
                action.deleteLater()
        for sub in self._submenus:
            sub.deleteLater()
        self._submenus.clear()

    def _add_timer_menu(self, timer: RunningTimer, now: datetime) -> None:
        sub = self._menu.addMenu(timer_label(timer, now))
        self._submenus.append(sub)
        timer_id = timer.id
        store = self._store

        if timer.is_running:
            sub.addAction("Pause").triggered.connect(
                lambda _checked=False: store.pause_timer(timer_id)
            )
        elif timer.is_paused:
            sub.addAction("Resume").triggered.connect(
                lambda _checked=False: store.resume_timer(timer_id)
            )
        sub.addAction("+1 min").triggered.connect(
            lambda _checked=False: store.adjust_timer(timer_id, ADJUST_STEP_SECONDS)
        )
        minus = sub.addAction("−1 min")
        minus.setEnabled(not timer.is_done)
        minus.triggered.connect(
            lambda _checked=False: store.adjust_timer(timer_id, -ADJUST_STEP_SECONDS)
        )
        sub.addAction("Restart").triggered.connect(
            lambda _checked=False: store.restart_timer(timer_id)
        )
        sub.addSeparator()
        sub.addAction("Clear").triggered.connect(
            lambda _checked=False: store.clear_timer(timer_id)
        )

    # ══════════════════════════════════════════════════════════════════
    #  TICK
    # ══════════════════════════════════════════════════════════════════

    def _on_now_changed(self, now: datetime) -> None:
        timers = self._store.running_timers
        running = [t for t in timers if t.is_running]
        if running:
            soonest = min(running, key=lambda t: t.remaining_seconds(now))
            self._tray_icon.setToolTip(f"PrepTick — {timer_label(soonest, now)}")
        elif timers:
            self._tray_icon.setToolTip(f"PrepTick — {len(timers)} timer(s)")
        else:
            self._tray_icon.setToolTip("PrepTick — Ready")
        self._update_icon(timers)

    def _update_icon(self, timers: list[RunningTimer]) -> None:
        state = tray_state(timers)
        if state is not self._icon_state:
            self._icon_state = state
            self._tray_icon.setIcon(_make_tray_icon(state))

    def _quit_app(self) -> None:
        self._tick_driver.stop()
        self._tray_icon.hide()
        QApplication.instance().quit()
