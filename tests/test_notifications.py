"""Tests for the alert scheduler and the alert queues behind it."""

import pytest

from preptick.notifications import (
    AuthorizationStatus,
    InMemoryNotificationCenter,
    NotificationError,
    NotificationRequest,
    NotificationScheduler,
    notification_identifier,
)
from preptick.notifications.qt_center import MAX_FIRE_IN_SECONDS, QtNotificationCenter
from preptick.timer.models import RunningTimer

from helpers import T0, at, eggs, SignalCollector


def running(**overrides) -> RunningTimer:
    return RunningTimer.start(eggs(**overrides), T0)


# ═══════════════════════════════════════════════════════════════════════════
#  SCHEDULE
# ═══════════════════════════════════════════════════════════════════════════


class TestSchedule:

    def test_schedules_remaining_time(self, scheduler, center):
        timer = running()
        assert scheduler.schedule(timer, True, False, at(60))
        request = center.pending[notification_identifier(timer.id)]
        assert request.fire_in_seconds == 300
        assert request.title == "PrepTick"
        assert request.body == "Eggs done."
        assert request.sound is True

    def test_identifier_format(self):
        assert notification_identifier("ABC") == "timer_ABC"

    def test_silent_mode_drops_sound(self, scheduler, center):
        timer = running()
        scheduler.schedule(timer, True, True, T0)
        assert center.pending[notification_identifier(timer.id)].sound is False

    def test_alerts_disabled_is_noop(self, scheduler, center):
        assert not scheduler.schedule(running(), False, False, T0)
        assert center.pending == {}

    def test_paused_timer_is_noop(self, scheduler, center):
        timer = running()
        timer.pause(at(10))
        assert not scheduler.schedule(timer, True, False, at(10))
        assert center.pending == {}

    def test_expired_timer_is_noop(self, scheduler, center):
        assert not scheduler.schedule(running(), True, False, at(360))
        assert center.pending == {}

    def test_unauthorized_is_noop(self):
        center = InMemoryNotificationCenter(AuthorizationStatus.DENIED)
        scheduler = NotificationScheduler(center)
        assert not scheduler.schedule(running(), True, False, T0)
        assert center.added == []

    def test_provisional_counts_as_authorized(self):
        center = InMemoryNotificationCenter(AuthorizationStatus.PROVISIONAL)
        assert NotificationScheduler(center).schedule(running(), True, False, T0)

    def test_authorization_checked_on_every_attempt(self):
        center = InMemoryNotificationCenter(AuthorizationStatus.DENIED)
        scheduler = NotificationScheduler(center)
        timer = running()
        scheduler.schedule(timer, True, False, T0)
        center.status = AuthorizationStatus.AUTHORIZED
        assert scheduler.schedule(timer, True, False, T0)

    def test_rescheduling_replaces_existing(self, scheduler, center):
        timer = running()
        scheduler.schedule(timer, True, False, T0)
        center.deliver_due(10_000)
        scheduler.schedule(timer, True, False, at(100))
        assert list(center.pending) == [notification_identifier(timer.id)]
        assert center.pending[notification_identifier(timer.id)].fire_in_seconds == 260
        assert center.delivered == {}

    def test_platform_failure_is_swallowed(self, scheduler, center):
        center.fail_with = NotificationError("queue full")
        assert not scheduler.schedule(running(), True, False, T0)
        assert center.pending == {}


# ═══════════════════════════════════════════════════════════════════════════
#  CANCEL / RECONCILE
# ═══════════════════════════════════════════════════════════════════════════


class TestCancel:

    def test_cancel_removes_pending_and_delivered(self, scheduler, center):
        a, b = running(), running(name="Toast")
        scheduler.schedule(a, True, False, T0)
        scheduler.schedule(b, True, False, T0)
        center.deliver_due(360)

        scheduler.cancel(a.id)
        assert notification_identifier(a.id) not in center.delivered
        assert notification_identifier(b.id) in center.delivered

    def test_cancel_is_idempotent(self, scheduler, center):
        timer = running()
        scheduler.schedule(timer, True, False, T0)
        scheduler.cancel(timer.id)
        scheduler.cancel(timer.id)
        assert center.pending == {}

    def test_cancel_all(self, scheduler, center):
        timers = [running(), running(), running()]
        for timer in timers:
            scheduler.schedule(timer, True, False, T0)
        scheduler.cancel_all(t.id for t in timers[:2])
        assert list(center.pending) == [notification_identifier(timers[2].id)]


class TestReconcile:

    def test_removes_orphans_only(self, scheduler, center):
        live, gone = running(), running()
        scheduler.schedule(live, True, False, T0)
        scheduler.schedule(gone, True, False, T0)

        removed = scheduler.reconcile([live])
        assert removed == [notification_identifier(gone.id)]
        assert list(center.pending) == [notification_identifier(live.id)]

    def test_non_running_timers_are_not_expected(self, scheduler, center):
        timer = running()
        scheduler.schedule(timer, True, False, T0)
        timer.pause(at(10))
        assert scheduler.reconcile([timer]) == [notification_identifier(timer.id)]
        assert center.pending == {}

    def test_foreign_identifiers_are_orphans(self, scheduler, center):
        center.add(NotificationRequest("debug_preptick", "PrepTick", "Test", 5))
        scheduler.reconcile([])
        assert center.pending == {}

    def test_nothing_to_do(self, scheduler, center):
        timer = running()
        scheduler.schedule(timer, True, False, T0)
        assert scheduler.reconcile([timer]) == []


class TestAuthorization:

    def test_request_grants(self):
        center = InMemoryNotificationCenter(AuthorizationStatus.NOT_DETERMINED)
        scheduler = NotificationScheduler(center)
        assert not scheduler.is_authorized()
        scheduler.request_authorization()
        assert scheduler.is_authorized()

    def test_request_can_be_declined(self):
        center = InMemoryNotificationCenter(
            AuthorizationStatus.NOT_DETERMINED, grant_on_request=False,
        )
        scheduler = NotificationScheduler(center)
        scheduler.request_authorization()
        assert center.status is AuthorizationStatus.DENIED
        assert not scheduler.schedule(running(), True, False, T0)


# ═══════════════════════════════════════════════════════════════════════════
#  QT CENTER
# ═══════════════════════════════════════════════════════════════════════════


class FakeSounds:
    def __init__(self):
        self.played = []

    def play(self, name):
        self.played.append(name)


def request(identifier="timer_A", seconds=60, sound=True) -> NotificationRequest:
    return NotificationRequest(identifier, "PrepTick", "Eggs done.", seconds, sound)


class TestQtNotificationCenter:

    def test_without_tray_is_denied(self, qapp):
        center = QtNotificationCenter(None)
        center.request_authorization()
        assert center.authorization_status() is AuthorizationStatus.DENIED

    def test_add_and_remove_pending(self, qapp):
        center = QtNotificationCenter(None)
        center.add(request("timer_A"))
        center.add(request("timer_B"))
        assert sorted(center.pending_identifiers()) == ["timer_A", "timer_B"]
        center.remove_pending(["timer_A", "timer_missing"])
        assert center.pending_identifiers() == ["timer_B"]

    def test_add_replaces_same_identifier(self, qapp):
        center = QtNotificationCenter(None)
        center.add(request("timer_A", 60))
        center.add(request("timer_A", 30))
        assert center.pending_identifiers() == ["timer_A"]

    def test_firing_delivers_and_plays(self, qapp):
        sounds = FakeSounds()
        center = QtNotificationCenter(None, sounds)
        delivered = SignalCollector()
        center.delivered.connect(delivered)

        center.add(request("timer_A"))
        center._fire("timer_A")

        assert center.pending_identifiers() == []
        assert center.delivered_identifiers() == ["timer_A"]
        assert sounds.played == ["timer_done"]
        assert delivered.last.body == "Eggs done."

    def test_silent_request_plays_nothing(self, qapp):
        sounds = FakeSounds()
        center = QtNotificationCenter(None, sounds)
        center.add(request("timer_A", sound=False))
        center._fire("timer_A")
        assert sounds.played == []

    def test_remove_delivered(self, qapp):
        center = QtNotificationCenter(None)
        center.add(request("timer_A"))
        center._fire("timer_A")
        center.remove_delivered(["timer_A"])
        assert center.delivered_identifiers() == []

    def test_cancelled_request_never_fires(self, qapp):
        sounds = FakeSounds()
        center = QtNotificationCenter(None, sounds)
        center.add(request("timer_A"))
        center.remove_pending(["timer_A"])
        center._fire("timer_A")
        assert sounds.played == []

    def test_delay_beyond_qt_limit_raises(self, qapp):
        center = QtNotificationCenter(None)
        with pytest.raises(NotificationError):
            center.add(request(seconds=MAX_FIRE_IN_SECONDS + 1))
