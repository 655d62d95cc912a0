from __future__ import annotations

import argparse
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from PyQt6.QtCore import QCoreApplication, QSettings, QTimer

from pyfocus.di.container import Container
from pyfocus.services.config.app_config import build_app_config
from pyfocus.utils.constants import APP_NAME, APP_ORG
from pyfocus.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def run_daemon(argv: Sequence[str]) -> int:
    """
    Headless completion scheduler host.

    Keeps wake alarms alive while no window is open. Exits with status 1 when
    another process already hosts the scheduler.
    """
    parser = argparse.ArgumentParser(
        prog="pyfocus-daemon", description="Background completion scheduler for PyFocus Timer."
    )
    parser.add_argument("--config", type=Path, default=None, help="explicit config.ini path")
    parser.add_argument("--log-level", default=None, help="override [logging] level")
    args, _unknown = parser.parse_known_args(list(argv)[1:])

    config = build_app_config(explicit_ini=args.config)
    configure_logging(args.log_level or config.log_level(), log_file=config.log_file())

    QCoreApplication.setOrganizationName(APP_ORG)
    QCoreApplication.setApplicationName(APP_NAME)
    app = QCoreApplication(list(argv))

    container = Container(
        config=config,
        qsettings=QSettings(APP_ORG, APP_NAME),
        notifier=_LogOnlyNotifier(),
    )
    if not container.start_scheduler():
        logger.error("Scheduler already running in another process; exiting")
        return 1
    app.aboutToQuit.connect(container.stop_scheduler)

    # Let Ctrl+C reach Python while the Qt loop runs.
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    signal.signal(signal.SIGTERM, lambda *_: app.quit())
    pulse = QTimer()
    pulse.timeout.connect(lambda: None)
    pulse.start(500)

    logger.info("Scheduler daemon running (store: %s)", config.store_path())
    return app.exec()


class _LogOnlyNotifier:
    """No tray without a GUI; completions are still logged."""

    def notify(
        self,
        kind: str,
        title: str,
        message: str,
        *,
        dedupe_key: str,
        require_interaction: bool = False,
    ) -> None:
        logger.info("Notification [%s] %s: %s", kind, title, message)


def main() -> int:
    return run_daemon(sys.argv)


if __name__ == "__main__":
    raise SystemExit(main())
