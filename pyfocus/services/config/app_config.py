from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir

from pyfocus.services.config.ini_config_service import IniConfigService
from pyfocus.utils.constants import APP_DIR, SCHEDULER_LOCK_FILE, STORE_FILE


def _project_root_fallback() -> Path:
    """
    Best-effort project root resolution that also works in PyInstaller:
      - PyInstaller onefile/onedir uses sys._MEIPASS as bundle root
      - dev mode walks upward from this file
    """
    meipass = getattr(sys, "_MEIPASS", None)  # type: ignore[attr-defined]
    if meipass:
        return Path(meipass)
    # pyfocus/services/config/app_config.py -> repository root
    return Path(__file__).resolve().parents[3]


@dataclass(frozen=True)
class AppConfig:
    """
    Typed view over IniConfigService plus the per-user data directory.

    The store file defaults to <data_dir>/focus_store.json unless
    `[store] path` points somewhere else.
    """

    ini: IniConfigService
    data_dir: Path

    def store_path(self) -> Path:
        raw = (self.ini.get("store", "path", "") or "").strip()
        if raw:
            return Path(raw).expanduser()
        return self.data_dir / STORE_FILE

    def scheduler_lock_path(self) -> Path:
        return self.data_dir / SCHEDULER_LOCK_FILE

    def safety_margin_ms(self) -> int:
        return max(0, self.ini.get_int("scheduler", "safety_margin_ms", 500) or 0)

    def early_fire_tolerance_ms(self) -> int:
        return max(0, self.ini.get_int("scheduler", "early_fire_tolerance_ms", 250) or 0)

    def keepalive_ms(self) -> int:
        return max(0, self.ini.get_int("scheduler", "keepalive_seconds", 60) or 0) * 1000

    def stale_after_hours(self) -> float:
        value = self.ini.get_float("recovery", "stale_after_hours", 24.0)
        return value if value is not None and value > 0 else 24.0

    def log_level(self) -> str:
        return (self.ini.get("logging", "level", "INFO") or "INFO").strip()

    def log_file(self) -> Path | None:
        raw = (self.ini.get("logging", "file", "") or "").strip()
        return Path(raw).expanduser() if raw else None

    # ---- delegate IniConfigService methods ----

    def get(self, section: str, key: str, default: str | None = None) -> str | None:
        return self.ini.get(section, key, default)

    def get_int(self, section: str, key: str, default: int | None = None) -> int | None:
        return self.ini.get_int(section, key, default)

    def get_bool(self, section: str, key: str, default: bool | None = None) -> bool | None:
        return self.ini.get_bool(section, key, default)

    def as_dict(self) -> Mapping[str, Mapping[str, str]]:
        return self.ini.as_dict()

    @property
    def loaded_from(self) -> Path | None:
        return self.ini.loaded_from


def build_app_config(
    *,
    explicit_ini: Path | None = None,
    project_root: Path | None = None,
    data_dir: Path | None = None,
) -> AppConfig:
    root = project_root or _project_root_fallback()
    ini = IniConfigService(explicit_path=explicit_ini, project_root=root)
    data = Path(data_dir) if data_dir is not None else Path(user_data_dir(APP_DIR))
    return AppConfig(ini=ini, data_dir=data)
