"""Concrete services: store, focus session engine, configuration and Qt UI."""

from .clock import SystemClock
from .store import JsonFileStore

__all__ = ["JsonFileStore", "SystemClock"]
