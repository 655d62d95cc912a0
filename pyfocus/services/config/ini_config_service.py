# pyfocus/services/config/ini_config_service.py
from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from platformdirs import user_config_dir

from pyfocus.domain.interfaces import IConfigService
from pyfocus.utils.constants import APP_DIR

logger = logging.getLogger(__name__)


class IniConfigService(IConfigService):
    r"""
    INI-backed deployment configuration.

    Load order (first hit wins):
      1. Explicit path provided at construction
      2. User config dir (e.g., ~/.config/PyFocusTimer/config.ini or %APPDATA%\PyFocusTimer\config.ini)
      3. Project default at <repo>/config/config.ini  (optional)

    Every key in DEFAULTS is always present, so a missing or malformed file
    still yields a working timer.
    """

    DEFAULT_APP_DIR = APP_DIR
    DEFAULT_FILE = "config.ini"

    DEFAULTS: Dict[str, Dict[str, str]] = {
        "store": {"path": ""},
        "scheduler": {
            "safety_margin_ms": "500",
            "early_fire_tolerance_ms": "250",
            "keepalive_seconds": "60",
        },
        "recovery": {"stale_after_hours": "24"},
        "logging": {"level": "INFO", "file": ""},
    }

    def __init__(self, explicit_path: Optional[Path] = None, project_root: Optional[Path] = None):
        self._parser = configparser.ConfigParser()
        self._parser.read_dict(self.DEFAULTS)
        self._loaded_from: Optional[Path] = None

        candidates: list[Path] = []
        if explicit_path:
            candidates.append(Path(explicit_path))
        candidates.append(Path(user_config_dir(self.DEFAULT_APP_DIR)) / self.DEFAULT_FILE)
        if project_root:
            candidates.append(Path(project_root) / "config" / self.DEFAULT_FILE)

        for path in candidates:
            if not path.exists():
                continue
            try:
                with path.open("r", encoding="utf-8") as fh:
                    self._parser.read_file(fh)
            except (OSError, configparser.Error) as exc:
                logger.warning("Ignoring unreadable config %s: %s", path, exc)
                self._parser = configparser.ConfigParser()
                self._parser.read_dict(self.DEFAULTS)
                continue
            self._loaded_from = path
            break

    # ----- IConfigService -----

    def get(self, section: str, key: str, default: Optional[str] = None) -> Optional[str]:
        if section not in self._parser:
            return default
        return self._parser[section].get(key, default)

    def get_int(self, section: str, key: str, default: Optional[int] = None) -> Optional[int]:
        val = self.get(section, key, None)
        if val is None:
            return default
        try:
            return int(val.strip())
        except ValueError:
            return default

    def get_float(self, section: str, key: str, default: Optional[float] = None) -> Optional[float]:
        val = self.get(section, key, None)
        if val is None:
            return default
        try:
            return float(val.strip())
        except ValueError:
            return default

    def get_bool(self, section: str, key: str, default: Optional[bool] = None) -> Optional[bool]:
        val = self.get(section, key, None)
        if val is None:
            return default
        s = val.strip().lower()
        if s in {"1", "true", "yes", "y", "on"}:
            return True
        if s in {"0", "false", "no", "n", "off"}:
            return False
        return default

    def as_dict(self) -> Mapping[str, Mapping[str, str]]:
        return {sect: dict(self._parser[sect]) for sect in self._parser.sections()}

    @property
    def loaded_from(self) -> Optional[Path]:
        """For diagnostics."""
        return self._loaded_from
