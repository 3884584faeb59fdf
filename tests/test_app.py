"""Tests for the tray shell: menu contents, intents and tooltip."""

import pytest

from PyQt6.QtWidgets import QSystemTrayIcon

from preptick.app import ADJUST_STEP_SECONDS, PrepTickTray, timer_label, tray_state
from preptick.timer.engine import TickDriver
from preptick.timer.models import RunningTimer, TimerState

from helpers import T0, at, eggs


@pytest.fixture
def tray(store, clock):
    driver = TickDriver(clock=clock)
    driver.bind(store)
    tray = PrepTickTray(store, driver, QSystemTrayIcon())
    tray.driver = driver
    return tray


def action(tray, text):
    matches = [a for a in tray.menu.actions() if a.text() == text]
    assert matches, f"no menu item {text!r}"
    return matches[0]


def texts(tray):
    return [a.text() for a in tray.menu.actions() if a.text()]


# ═══════════════════════════════════════════════════════════════════════
#  LABELS
# ═══════════════════════════════════════════════════════════════════════


class TestLabels:

    def test_running_label(self):
        timer = RunningTimer.start(eggs(), T0)
        assert timer_label(timer, at(60)) == "Eggs — 05:00"

    def test_paused_label(self):
        timer = RunningTimer.start(eggs(), T0)
        timer.pause(at(30))
        assert timer_label(timer, at(500)) == "Eggs — 05:30 (paused)"

    def test_done_label(self):
        timer = RunningTimer.start(eggs(), T0)
        timer.mark_done(at(400))
        assert timer_label(timer, at(400)) == "Eggs — done"

    def test_tray_state_priority(self):
        running = RunningTimer.start(eggs(), T0)
        paused = RunningTimer.start(eggs(), T0)
        paused.pause(T0)
        done = RunningTimer.start(eggs(), T0)
        done.mark_done(T0)

        assert tray_state([]) is None
        assert tray_state([paused]) is TimerState.PAUSED
        assert tray_state([paused, done]) is TimerState.DONE
        assert tray_state([done, running, paused]) is TimerState.RUNNING


# ═══════════════════════════════════════════════════════════════════════
#  MENU
# ═══════════════════════════════════════════════════════════════════════


class TestMenu:

    def test_favorites_listed(self, tray, store):
        items = texts(tray)
        for preset in store.favorite_presets:
            assert f"{preset.name} ({preset.formatted_duration})" in items

    def test_favorite_starts_timer(self, tray, store):
        preset = store.favorite_presets[0]
        action(tray, f"{preset.name} ({preset.formatted_duration})").trigger()
        assert [t.name for t in store.running_timers] == [preset.name]
        assert store.running_timers[0].end_at == at(preset.duration_seconds)

    def test_repeat_disabled_without_last_set(self, tray):
        assert not action(tray, "Repeat last set (0)").isEnabled()

    def test_repeat_counts_last_set(self, tray, store):
        store.start_preset(eggs())
        store.start_preset(eggs(name="Toast"))
        repeat = action(tray, "Repeat last set (2)")
        assert repeat.isEnabled()

        repeat.trigger()
        assert [t.name for t in store.running_timers] == ["Eggs", "Toast"]

    def test_timer_submenu(self, tray, store):
        store.start_preset(eggs())
        assert "Eggs — 06:00" in texts(tray)
        submenu = tray._submenus[0]
        assert [a.text() for a in submenu.actions() if a.text()] == [
            "Pause", "+1 min", "−1 min", "Restart", "Clear",
        ]

    def test_submenu_pause_and_adjust(self, tray, store, clock):
        timer = store.start_preset(eggs())
        clock.advance(60)
        [pause] = [a for a in tray._submenus[0].actions() if a.text() == "Pause"]
        pause.trigger()
        assert store.timer(timer.id).is_paused

        [plus] = [a for a in tray._submenus[0].actions() if a.text() == "+1 min"]
        plus.trigger()
        assert store.timer(timer.id).remaining_seconds(clock()) == 300 + ADJUST_STEP_SECONDS

    def test_clear_finished(self, tray, store, clock):
        store.start_preset(eggs(duration_seconds=10))
        store.start_preset(eggs())
        clock.advance(20)
        store.reconcile_running_timers()

        clear_done = action(tray, "Clear finished")
        assert clear_done.isEnabled()
        clear_done.trigger()
        assert [t.duration_seconds for t in store.running_timers] == [360]

    def test_alert_toggles(self, tray, store):
        alerts = action(tray, "Timer alerts")
        assert alerts.isChecked()
        alerts.trigger()
        assert not store.settings.alerts_enabled
        assert not action(tray, "Silent mode").isEnabled()

        action(tray, "Timer alerts").trigger()
        action(tray, "Silent mode").trigger()
        assert store.settings.silent_mode_enabled


# ═══════════════════════════════════════════════════════════════════════
#  TOOLTIP
# ═══════════════════════════════════════════════════════════════════════


class TestTooltip:

    def test_idle(self, tray):
        assert tray._tray_icon.toolTip() == "PrepTick — Ready"

    def test_shows_soonest_running_timer(self, tray, store, clock):
        store.start_preset(eggs())
        store.start_preset(eggs(name="Toast", duration_seconds=120))
        clock.advance(30)
        tray.driver.tick()
        assert tray._tray_icon.toolTip() == "PrepTick — Toast — 01:30"

    def test_counts_when_nothing_running(self, tray, store, clock):
        timer = store.start_preset(eggs())
        store.pause_timer(timer.id)
        tray.driver.tick()
        assert tray._tray_icon.toolTip() == "PrepTick — 1 timer(s)"
