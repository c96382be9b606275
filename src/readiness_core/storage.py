from __future__ import annotations

import contextlib
import json
import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .atomic import write_atomic

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")

MAX_STORE_SIZE_MB = 5


@dataclass(frozen=True)
class StorageEvent:
    key: str
    old_value: str | None
    new_value: str | None


Listener = Callable[[StorageEvent], None]


class KeyValueStore(Protocol):
    """String key-value persistence with change notifications."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def subscribe(self, listener: Listener) -> Callable[[], None]: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = {}
        self._listeners: list[Listener] = []
        for key, value in (initial or {}).items():
            self._data[validate_key(key)] = value

    def get(self, key: str) -> str | None:
        return self._data.get(validate_key(key))

    def set(self, key: str, value: str) -> None:
        key = validate_key(key)
        self._sync()
        old = self._data.get(key)
        self._data[key] = value
        self._persist()
        if old != value:
            self._emit(StorageEvent(key=key, old_value=old, new_value=value))

    def remove(self, key: str) -> None:
        key = validate_key(key)
        self._sync()
        if key not in self._data:
            return
        old = self._data.pop(key)
        self._persist()
        self._emit(StorageEvent(key=key, old_value=old, new_value=None))

    def keys(self) -> list[str]:
        return sorted(self._data)

    def items(self) -> Iterator[tuple[str, str]]:
        yield from sorted(self._data.items())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def _sync(self) -> None:
        """Hook run before a mutation; durable subclasses refresh from disk."""

    def _persist(self) -> None:
        """Hook for durable subclasses."""

    def _emit(self, event: StorageEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


class JsonFileStore(MemoryStore):
    """Key-value store backed by a single JSON object on disk.

    Writes go through a temp file + rename so a concurrent reader never sees a
    partial document. ``reload`` picks up writes made by other processes and
    notifies subscribers for every key that changed.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        self._mtime_ns: int | None = None
        self._data = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> list[StorageEvent]:
        fresh = self._read()
        events: list[StorageEvent] = []
        for key in sorted(set(self._data) | set(fresh)):
            old, new = self._data.get(key), fresh.get(key)
            if old != new:
                events.append(StorageEvent(key=key, old_value=old, new_value=new))
        self._data = fresh
        for event in events:
            self._emit(event)
        return events

    def changed_on_disk(self) -> bool:
        return self._current_mtime() != self._mtime_ns

    def _sync(self) -> None:
        # Other processes write the same file; merge their keys before ours
        self.reload()

    def _read(self) -> dict[str, str]:
        self._mtime_ns = self._current_mtime()
        if not self._path.exists():
            return {}
        size_mb = self._path.stat().st_size / (1024 * 1024)
        if size_mb > MAX_STORE_SIZE_MB:
            raise ValueError(f"state file too large: {size_mb:.1f}MB > {MAX_STORE_SIZE_MB}MB")
        content = self._path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("invalid state file: expected a JSON object")
        result: dict[str, str] = {}
        for key, value in data.items():
            if not isinstance(key, str) or not _KEY_RE.fullmatch(key):
                logger.warning("ignoring invalid state key %r", key)
                continue
            result[key] = value if isinstance(value, str) else json.dumps(value)
        return result

    def _persist(self) -> None:
        payload = json.dumps(self._data, indent=2, sort_keys=True)
        write_atomic(self._path, payload.encode("utf-8"), prefix=".readiness-state-")
        self._mtime_ns = self._current_mtime()

    def _current_mtime(self) -> int | None:
        try:
            return self._path.stat().st_mtime_ns
        except OSError:
            return None


def validate_key(key: str) -> str:
    if not _KEY_RE.fullmatch(key):
        raise ValueError(f"invalid storage key: {key!r}")
    return key
