"""Shared clock for PrepTick.

One ``TickDriver`` per process broadcasts "now" every ``interval_ms``
(half a second by default) to anything showing a live countdown, and asks
the bound store to reconcile its timers so expiries turn into DONE while
the app is in the foreground.  Nothing here counts down: every tick just
re-reads the wall clock.
"""

from __future__ import annotations

import logging
import weakref
from datetime import datetime
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 500


class TickDriver(QObject):
    """Qt-based periodic clock.

    Signals
    -------
    now_changed(now: datetime)
        Emitted on every tick, before the store reconciles.
    """

    now_changed = pyqtSignal(object)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(parent)
        self._clock = clock
        self._now: datetime = clock()
        self._store_ref: weakref.ref | None = None

        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(max(1, interval_ms))
        self._qt_timer.timeout.connect(self.tick)

    # ── properties ────────────────────────────────────────────────────

    @property
    def now(self) -> datetime:
        return self._now

    @property
    def interval_ms(self) -> int:
        return self._qt_timer.interval()

    @property
    def is_active(self) -> bool:
        return self._qt_timer.isActive()

    @property
    def store(self):
        """The bound store, or ``None`` if unbound or already collected."""
        if self._store_ref is None:
            return None
        return self._store_ref()

    # ── controls ──────────────────────────────────────────────────────

    def bind(self, store) -> None:
        """Point the driver at ``store``.  Rebinding replaces the old one."""
        if self.store is store:
            return
        self._store_ref = weakref.ref(store)
        logger.debug("Tick driver bound to %r", store)

    def start(self) -> None:
        if not self._qt_timer.isActive():
            self._qt_timer.start()

    def stop(self) -> None:
        self._qt_timer.stop()

    def tick(self) -> None:
        self._now = self._clock()
        self.now_changed.emit(self._now)

        store = self.store
        if store is not None:
            store.reconcile_running_timers(self._now)
