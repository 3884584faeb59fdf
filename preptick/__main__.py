"""Allow running PrepTick as a module: python -m preptick."""

import logging
import sys

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QApplication, QSystemTrayIcon

from .app import PrepTickTray
from .audio.sounds import SoundManager
from .database.db import KeyValueStore, configure_engine, init_db
from .log import setup_logging
from .notifications.qt_center import QtNotificationCenter
from .notifications.scheduler import NotificationScheduler
from .settings import load_config
from .store import TimerStore
from .timer.engine import TickDriver

logger = logging.getLogger(__name__)


def main() -> None:
    config = load_config()
    setup_logging(config.log_level, log_file="preptick.log" if config.log_to_file else None)

    if config.database_url:
        configure_engine(config.database_url)
    init_db()

    app = QApplication(sys.argv)
    app.setApplicationName("PrepTick")
    app.setOrganizationName("PrepTick")
    app.setQuitOnLastWindowClosed(False)

    tray_icon = QSystemTrayIcon(app)
    sound_manager = SoundManager(app)
    center = QtNotificationCenter(tray_icon, sound_manager, parent=app)
    scheduler = NotificationScheduler(center)

    store = TimerStore(
        KeyValueStore(),
        scheduler,
        parent=app,
        grouping_window_seconds=config.grouping_window_seconds,
    )
    if store.settings.alerts_enabled:
        scheduler.request_authorization()
    if not store.has_completed_onboarding:
        store.complete_onboarding()

    tick_driver = TickDriver(app, interval_ms=config.tick_interval_ms)
    tick_driver.bind(store)

    def _on_application_state(state: Qt.ApplicationState) -> None:
        if state == Qt.ApplicationState.ApplicationActive:
            store.handle_app_active()

    app.applicationStateChanged.connect(_on_application_state)
    store.handle_app_active()

    tray = PrepTickTray(store, tick_driver, tray_icon, parent=app)
    tray.show()
    tick_driver.start()
    logger.info("PrepTick ready (%d running timer(s))", len(store.running_timers))

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
