"""Tests for the tick driver: broadcast, store binding, and reconcile-on-tick."""

import gc

from preptick.timer.engine import DEFAULT_TICK_INTERVAL_MS, TickDriver
from preptick.timer.models import TimerState

from helpers import T0, at, eggs, SignalCollector


class RecordingStore:
    def __init__(self):
        self.calls = []

    def reconcile_running_timers(self, now):
        self.calls.append(now)
        return False


class TestTickDriver:

    def test_default_interval(self, qapp, clock):
        driver = TickDriver(clock=clock)
        assert driver.interval_ms == DEFAULT_TICK_INTERVAL_MS == 500

    def test_custom_interval(self, qapp, clock):
        assert TickDriver(interval_ms=250, clock=clock).interval_ms == 250

    def test_initial_now_comes_from_clock(self, qapp, clock):
        assert TickDriver(clock=clock).now == T0

    def test_tick_broadcasts_now(self, qapp, clock):
        driver = TickDriver(clock=clock)
        seen = SignalCollector()
        driver.now_changed.connect(seen)

        clock.advance(0.5)
        driver.tick()
        clock.advance(0.5)
        driver.tick()

        assert seen.items == [at(0.5), at(1)]
        assert driver.now == at(1)

    def test_tick_without_store_only_broadcasts(self, qapp, clock):
        driver = TickDriver(clock=clock)
        driver.tick()
        assert driver.store is None

    def test_start_and_stop(self, qapp, clock):
        driver = TickDriver(clock=clock)
        driver.start()
        assert driver.is_active
        driver.start()
        assert driver.is_active
        driver.stop()
        assert not driver.is_active


class TestBinding:

    def test_tick_reconciles_bound_store(self, qapp, clock):
        store = RecordingStore()
        driver = TickDriver(clock=clock)
        driver.bind(store)
        clock.advance(3)
        driver.tick()
        assert store.calls == [at(3)]

    def test_bind_is_idempotent(self, qapp, clock):
        store = RecordingStore()
        driver = TickDriver(clock=clock)
        driver.bind(store)
        driver.bind(store)
        driver.tick()
        assert len(store.calls) == 1

    def test_rebind_replaces_store(self, qapp, clock):
        old, new = RecordingStore(), RecordingStore()
        driver = TickDriver(clock=clock)
        driver.bind(old)
        driver.bind(new)
        driver.tick()
        assert old.calls == []
        assert len(new.calls) == 1

    def test_driver_does_not_keep_store_alive(self, qapp, clock):
        driver = TickDriver(clock=clock)
        store = RecordingStore()
        driver.bind(store)
        del store
        gc.collect()
        assert driver.store is None
        driver.tick()


class TestTickWithRealStore:

    def test_expiry_detected_on_tick(self, store, clock):
        driver = TickDriver(clock=clock)
        driver.bind(store)
        timer = store.start_preset(eggs(), T0)

        clock.advance(359)
        driver.tick()
        assert store.timer(timer.id).state is TimerState.RUNNING

        clock.advance(2)
        driver.tick()
        done = store.timer(timer.id)
        assert done.state is TimerState.DONE
        assert done.end_at == at(360)

    def test_long_gap_between_ticks(self, store, clock):
        driver = TickDriver(clock=clock)
        driver.bind(store)
        store.start_preset(eggs(), T0)
        store.start_preset(eggs(duration_seconds=20_000), T0)

        clock.advance(6 * 3600)
        driver.tick()
        states = [t.state for t in store.running_timers]
        assert states == [TimerState.DONE, TimerState.RUNNING]
