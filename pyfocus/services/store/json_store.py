from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PyQt6.QtCore import QFileSystemWatcher, QIODevice, QLockFile, QObject, QSaveFile, pyqtSignal

logger = logging.getLogger(__name__)

_MISSING = object()

DEFAULT_LOCK_TIMEOUT_MS = 2000
LOCK_STALE_MS = 10_000

# Write locks held by this process, keyed by store path. A nested write to the
# same file (another store instance inside a mutate callback) reuses the lock.
_held_locks: dict[str, QLockFile] = {}


@contextmanager
def _write_lock(path: Path, timeout_ms: int) -> Iterator[None]:
    key = str(path.absolute())
    if key in _held_locks:
        yield
        return
    lock = QLockFile(key + ".lock")
    lock.setStaleLockTime(LOCK_STALE_MS)
    if not lock.tryLock(timeout_ms):
        raise OSError(f"Store is locked by another writer ({lock.error().name}): {path}")
    _held_locks[key] = lock
    try:
        yield
    finally:
        del _held_locks[key]
        lock.unlock()


@dataclass(frozen=True)
class StoreChange:
    old_value: Any
    new_value: Any

    @property
    def removed(self) -> bool:
        return self.new_value is None


def diff_snapshots(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, StoreChange]:
    changes: dict[str, StoreChange] = {}
    for key in set(old) | set(new):
        before = old.get(key, _MISSING)
        after = new.get(key, _MISSING)
        if before == after:
            continue
        changes[key] = StoreChange(
            old_value=None if before is _MISSING else before,
            new_value=None if after is _MISSING else after,
        )
    return changes


def _merge_touched(base: dict[str, Any], work: dict[str, Any], latest: dict[str, Any]) -> bool:
    """Copy into `latest` every key that differs between `base` and `work`."""
    touched = False
    for key in set(base) | set(work):
        if key not in work:
            latest.pop(key, None)
            touched = True
        elif base.get(key, _MISSING) != work[key]:
            latest[key] = work[key]
            touched = True
    return touched


class JsonFileStore(QObject):
    """
    Crash-safe key-value store kept in one JSON file.

    Every read goes back to disk so a process never trusts a stale copy.
    Writes hold `<store>.lock` (QLockFile) for the whole read-modify-write,
    only the keys the caller touched are written over the current file, and
    the file is replaced atomically (QSaveFile). Concurrent writers therefore
    lose nothing but a same-key race, where the last writer wins.
    `changed` fires for this process's own writes and, through a
    QFileSystemWatcher, for writes made by other processes.
    """

    changed = pyqtSignal(object)  # dict[str, StoreChange]

    def __init__(
        self,
        path: Path,
        *,
        watch: bool = True,
        lock_timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._path = Path(path)
        self._lock_timeout_ms = lock_timeout_ms
        self._cache: dict[str, Any] = self._read_disk()
        self._watcher: QFileSystemWatcher | None = None
        if watch:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._watcher = QFileSystemWatcher(self)
            self._watcher.addPath(str(self._path.parent))
            self._watch_file()
            self._watcher.fileChanged.connect(self._on_disk_changed)
            self._watcher.directoryChanged.connect(self._on_disk_changed)

    @property
    def path(self) -> Path:
        return self._path

    # ----- IKeyValueStore -----

    def get(self, key: str, default: Any = None) -> Any:
        self.refresh()
        if key not in self._cache:
            return default
        return copy.deepcopy(self._cache[key])

    def snapshot(self) -> dict[str, Any]:
        self.refresh()
        return copy.deepcopy(self._cache)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def remove(self, *keys: str) -> None:
        self.update({}, remove=keys)

    def update(self, values: Mapping[str, Any], *, remove: Iterable[str] = ()) -> None:
        to_remove = list(remove)

        def apply(data: dict[str, Any]) -> None:
            for key in to_remove:
                data.pop(key, None)
            data.update(copy.deepcopy(dict(values)))

        self.mutate(apply)

    def mutate(self, fn: Callable[[dict[str, Any]], None]) -> None:
        """
        Read the file, let `fn` edit the dict in place, write the result back.

        Runs under the store's write lock. Keys `fn` left untouched keep
        whatever is on disk when the write happens, so a removal or append made
        meanwhile by another writer on the same file is not undone.
        Raises OSError when the lock cannot be taken or the write fails.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with _write_lock(self._path, self._lock_timeout_ms):
            base = self._read_disk()
            work = copy.deepcopy(base)
            fn(work)
            latest = self._read_disk()
            touched = _merge_touched(base, work, latest)
            if touched:
                self._write_disk(latest)
        self._publish(latest)

    def refresh(self) -> None:
        """Pick up writes from other processes and announce what changed."""
        self._publish(self._read_disk())

    # ----- internals -----

    def _publish(self, data: dict[str, Any]) -> None:
        changes = diff_snapshots(self._cache, data)
        self._cache = data
        if changes:
            self.changed.emit(changes)

    def _read_disk(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not read store %s: %s", self._path, exc)
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Store %s is corrupt; treating it as empty", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store %s does not hold an object; treating it as empty", self._path)
            return {}
        return data

    def _write_disk(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, ensure_ascii=True, indent=1, sort_keys=True)
        sf = QSaveFile(str(self._path))
        if not sf.open(QIODevice.OpenModeFlag.WriteOnly):
            raise OSError(f"Cannot open for write: {self._path}")
        sf.write(payload.encode("utf-8"))
        if not sf.commit():
            raise OSError(f"Commit failed for: {self._path}")
        self._watch_file()

    def _watch_file(self) -> None:
        # Atomic replace swaps the inode, so the watch has to be re-added.
        if self._watcher is None or not self._path.exists():
            return
        if str(self._path) not in self._watcher.files():
            self._watcher.addPath(str(self._path))

    def _on_disk_changed(self, _path: str) -> None:
        self._watch_file()
        self.refresh()
