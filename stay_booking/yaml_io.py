from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable
import shutil
import threading

import yaml

from .errors import ReservationStorageError

EventSink = Callable[[str, dict[str, Any]], None]

_PATH_LOCKS: dict[Path, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _PATH_LOCKS[key] = lock
        return lock


class YamlListFile:
    """A YAML file whose top level is a list of mappings.

    Writes go through a temp file and ``replace`` so a crash never leaves a
    half-written list behind. Every instance pointing at the same path shares
    one lock.
    """

    def __init__(self, path: Path, event_sink: EventSink | None = None) -> None:
        self.path = path
        self.event_sink = event_sink
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.lock = _lock_for(self.path)
        with self.lock:
            if not self.path.exists():
                self.path.write_text("[]\n", encoding="utf-8")

    def read_rows(self) -> list[dict[str, Any]]:
        with self.lock:
            try:
                payload = yaml.safe_load(self.path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                self.path.write_text("[]\n", encoding="utf-8")
                return []
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
                self._recover_corrupted(error)
                return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            with self.lock:
                self._recover_corrupted(ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._emit(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(self.path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def write_rows(self, rows: list[dict[str, Any]]) -> None:
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with self.lock:
            try:
                temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
                temp_path.replace(self.path)
            except OSError as error:
                raise ReservationStorageError(f"Failed to write YAML file: {self.path}") from error
            finally:
                if temp_path.is_file():
                    temp_path.unlink(missing_ok=True)

    def append_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self.lock:
            events = self.read_rows()
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self.write_rows(events)

    def _recover_corrupted(self, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = self.path.with_name(f"{self.path.stem}.corrupt.{timestamp}{self.path.suffix}")
        try:
            if self.path.exists():
                shutil.copy2(self.path, backup_path)
        except OSError:
            backup_path = Path("")

        self.path.write_text("[]\n", encoding="utf-8")
        self._emit(
            "YAML_RECOVERED",
            {
                "file": str(self.path.name),
                "backup": str(backup_path.name),
                "reason": str(error),
            },
        )

    def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if self.event_sink is not None:
            self.event_sink(event_type, payload)
