from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from PyQt6.QtWidgets import QApplication

from pyfocus.di.container import Container
from pyfocus.services.config.app_config import build_app_config
from pyfocus.services.ui.adapters import QtTrayNotifier
from pyfocus.utils.constants import APP_NAME, APP_ORG
from pyfocus.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pyfocus", description="Focus/break session timer.")
    parser.add_argument("--config", type=Path, default=None, help="explicit config.ini path")
    parser.add_argument("--log-level", default=None, help="override [logging] level")
    parser.add_argument("--no-popup", action="store_true", help="do not create the floating timer")
    # Qt consumes its own options (e.g. -platform); ignore what argparse doesn't know.
    args, _unknown = parser.parse_known_args(list(argv)[1:])
    return args


def run_app(argv: Sequence[str]) -> int:
    """
    Bootstraps Qt, composes the application via the DI container,
    reconciles any leftover session and launches the main window.
    """
    args = parse_args(argv)
    config = build_app_config(explicit_ini=args.config)
    configure_logging(args.log_level or config.log_level(), log_file=config.log_file())

    QApplication.setOrganizationName(APP_ORG)
    QApplication.setApplicationName(APP_NAME)
    app = QApplication(list(argv))

    container = Container.default(config=config)
    if isinstance(container.notifier, QtTrayNotifier):
        container.notifier.ensure_tray()

    hosting = container.start_scheduler()
    logger.info("Started %s (scheduler host: %s)", APP_NAME, hosting)
    app.aboutToQuit.connect(container.stop_scheduler)

    win = container.build_main_window(with_popup=not args.no_popup, app_title=APP_NAME)
    win.show()

    outcome = container.build_recovery(win).run()
    logger.info("Startup recovery: %s", outcome.action.value)
    win.presenter.refresh()

    return app.exec()
