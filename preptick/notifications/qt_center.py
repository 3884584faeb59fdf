"""Alert queue backed by Qt timers and the system tray.

Each pending request owns a single-shot ``QTimer``.  When it fires the
message is shown through ``QSystemTrayIcon.showMessage`` and, unless the
request is silent, the kitchen-bell chime plays.  The queue lives only as
long as the process; after a restart the store reconciles and
reschedules every running timer.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal
from PyQt6.QtWidgets import QSystemTrayIcon

from .center import (
    AuthorizationStatus,
    NotificationCenter,
    NotificationError,
    NotificationRequest,
)

logger = logging.getLogger(__name__)

# QTimer intervals are a signed 32-bit millisecond count.
MAX_FIRE_IN_SECONDS = (2**31 - 1) // 1000


class QtNotificationCenter(QObject, NotificationCenter):
    """Tray-message alerts.

    Signals
    -------
    delivered(request: NotificationRequest)
        Emitted after an alert is shown.
    """

    delivered = pyqtSignal(object)

    def __init__(
        self,
        tray_icon: QSystemTrayIcon | None,
        sound_manager=None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._tray_icon = tray_icon
        self._sound_manager = sound_manager
        self._status = AuthorizationStatus.NOT_DETERMINED
        self._pending: dict[str, tuple[QTimer, NotificationRequest]] = {}
        self._delivered: set[str] = set()

    def authorization_status(self) -> AuthorizationStatus:
        if self._tray_icon is None or not QSystemTrayIcon.isSystemTrayAvailable():
            return AuthorizationStatus.DENIED
        return self._status

    def request_authorization(self) -> None:
        if self._status is AuthorizationStatus.NOT_DETERMINED:
            self._status = AuthorizationStatus.AUTHORIZED
            logger.info("Tray alerts authorized")

    def add(self, request: NotificationRequest) -> None:
        if request.fire_in_seconds > MAX_FIRE_IN_SECONDS:
            raise NotificationError(
                f"{request.identifier} fires in {request.fire_in_seconds}s, "
                f"beyond the {MAX_FIRE_IN_SECONDS}s limit"
            )
        self.remove_pending([request.identifier])

        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(request.fire_in_seconds * 1000)
        timer.timeout.connect(lambda identifier=request.identifier: self._fire(identifier))
        self._pending[request.identifier] = (timer, request)
        timer.start()

    def remove_pending(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            entry = self._pending.pop(identifier, None)
            if entry is not None:
                timer, _ = entry
                timer.stop()
                timer.deleteLater()

    def remove_delivered(self, identifiers: list[str]) -> None:
        # A tray balloon can't be retracted once shown; just forget it.
        self._delivered.difference_update(identifiers)

    def pending_identifiers(self) -> list[str]:
        return list(self._pending)

    def delivered_identifiers(self) -> list[str]:
        return sorted(self._delivered)

    def _fire(self, identifier: str) -> None:
        entry = self._pending.pop(identifier, None)
        if entry is None:
            return
        timer, request = entry
        timer.deleteLater()
        self._delivered.add(identifier)

        if self._tray_icon is not None:
            self._tray_icon.showMessage(request.title, request.body)
        if request.sound and self._sound_manager is not None:
            self._sound_manager.play("timer_done")
        logger.info("Delivered %s", identifier)
        self.delivered.emit(request)
