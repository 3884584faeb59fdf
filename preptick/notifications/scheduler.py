"""Keeps the alert queue in step with running timers.

At most one alert exists per timer, identified as ``timer_<id>``.  Every
``schedule`` call cancels whatever was queued for that timer first, so a
stale request (the timer was paused, adjusted or cleared in the meantime)
is always superseded and calling it twice is harmless.

Nothing here raises to the caller.  Missing authorization and platform
failures are logged and skipped; the app keeps working without alerts.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from ..timer.models import RunningTimer, TimerState
from .center import NotificationCenter, NotificationError, NotificationRequest

logger = logging.getLogger(__name__)

ALERT_TITLE = "PrepTick"


def notification_identifier(timer_id: str) -> str:
    return f"timer_{timer_id}"


class NotificationScheduler:
    """Maps running-timer state onto a ``NotificationCenter``."""

    def __init__(self, center: NotificationCenter, *, title: str = ALERT_TITLE) -> None:
        self._center = center
        self._title = title

    @property
    def center(self) -> NotificationCenter:
        return self._center

    def request_authorization(self) -> None:
        try:
            self._center.request_authorization()
        except NotificationError as exc:
            logger.warning("Alert authorization request failed: %s", exc)

    def is_authorized(self) -> bool:
        return self._center.authorization_status().allows_alerts

    def schedule(
        self,
        timer: RunningTimer,
        alerts_enabled: bool,
        silent_mode_enabled: bool,
        now: datetime,
    ) -> bool:
        """Queue the completion alert for ``timer``.

        Returns True when a request was handed to the center.
        """
        if not alerts_enabled:
            return False
        if timer.state is not TimerState.RUNNING or timer.end_at is None:
            return False
        remaining = timer.remaining_seconds(now)
        if remaining <= 0:
            return False
        if not self.is_authorized():
            logger.debug("Alerts not authorized; skipping %s", timer.id)
            return False

        identifier = notification_identifier(timer.id)
        self.cancel(timer.id)
        request = NotificationRequest(
            identifier=identifier,
            title=self._title,
            body=f"{timer.name} done.",
            fire_in_seconds=remaining,
            sound=not silent_mode_enabled,
        )
        try:
            self._center.add(request)
        except NotificationError as exc:
            logger.warning("Could not schedule alert for %s: %s", timer.name, exc)
            return False
        logger.debug("Scheduled %s in %ss", identifier, remaining)
        return True

    def cancel(self, timer_id: str) -> None:
        self.cancel_all([timer_id])

    def cancel_all(self, timer_ids: Iterable[str]) -> None:
        identifiers = [notification_identifier(timer_id) for timer_id in timer_ids]
        if not identifiers:
            return
        self._remove(identifiers)

    def reconcile(self, timers: Iterable[RunningTimer]) -> list[str]:
        """Drop queued alerts that no running timer accounts for.

        Covers alerts left behind when a timer was cleared or finished
        while this process wasn't around to cancel them.  Returns the
        identifiers that were removed.
        """
        expected = {
            notification_identifier(timer.id)
            for timer in timers
            if timer.state is TimerState.RUNNING and timer.end_at is not None
        }
        orphaned = [
            identifier
            for identifier in self._center.pending_identifiers()
            if identifier not in expected
        ]
        if orphaned:
            logger.info("Removing %d orphaned alert(s)", len(orphaned))
            self._remove(orphaned)
        return orphaned

    def _remove(self, identifiers: list[str]) -> None:
        try:
            self._center.remove_pending(identifiers)
            self._center.remove_delivered(identifiers)
        except NotificationError as exc:
            logger.warning("Could not remove alerts %s: %s", identifiers, exc)
