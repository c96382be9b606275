"""Checklist progress persisted in a key-value store.

Each checklist keeps its checkbox states under ``<name>ChecklistStates`` as a
JSON object of item index to boolean, plus an ISO timestamp under
``<name>LastUpdated``. Progress is computed over whatever mapping is stored,
so a checklist that was never opened reports 0%.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from readiness_core import KeyValueStore, StorageEvent, redact

from .catalog import CHECKLIST_NAMES, get_checklist
from .models import Priority

logger = logging.getLogger(__name__)

STATES_SUFFIX = "ChecklistStates"
UPDATED_SUFFIX = "LastUpdated"
THEME_KEY = "theme"
THEMES = ("light", "dark")

SUCCESS_THRESHOLD = 80
WARNING_THRESHOLD = 50


def states_key(name: str) -> str:
    return f"{name}{STATES_SUFFIX}"


def updated_key(name: str) -> str:
    return f"{name}{UPDATED_SUFFIX}"


def checklist_for_key(key: str) -> str | None:
    """Checklist name for a ``<name>ChecklistStates`` key, else None."""
    if key.endswith(STATES_SUFFIX):
        name = key[: -len(STATES_SUFFIX)]
        if name in CHECKLIST_NAMES:
            return name
    return None


def js_round(value: float) -> int:
    """Round half up, matching ``Math.round`` for non-negative values."""
    return math.floor(value + 0.5)


def progress_color(percent: int) -> str:
    if percent >= SUCCESS_THRESHOLD:
        return "success"
    if percent >= WARNING_THRESHOLD:
        return "warning"
    return "default"


@dataclass(frozen=True)
class DashboardStats:
    total: int
    completed: int
    critical: int


class ChecklistStateStore:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def load_states(self, name: str) -> dict[int, bool]:
        _require_known(name)
        raw = self._store.get(states_key(name))
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("ignoring corrupt states for %s: %s", name, redact(str(exc)))
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring non-object states for %s", name)
            return {}
        states: dict[int, bool] = {}
        for key, value in data.items():
            try:
                states[int(key)] = bool(value)
            except ValueError:
                logger.warning("ignoring invalid item index %r for %s", key, name)
        return states

    def save_states(self, name: str, states: Mapping[int, bool]) -> None:
        _require_known(name)
        payload = {str(index): bool(checked) for index, checked in sorted(states.items())}
        self._store.set(states_key(name), json.dumps(payload))
        self._store.set(updated_key(name), self._clock().isoformat())
        logger.debug("saved %d states for %s", len(payload), name)

    def toggle(
        self,
        name: str,
        index: int,
        checked: bool | None = None,
        total: int | None = None,
    ) -> bool:
        """Flip (or set) one item and persist the full mapping.

        The stored mapping always covers every item of the checklist, so
        progress reflects unchecked items that were never touched.
        """
        size = total if total is not None else len(get_checklist(name).items)
        if size <= 0:
            raise ValueError("total must be positive")
        if not 0 <= index < size:
            raise ValueError(f"item index {index} out of range for {name} (0..{size - 1})")
        states = self.load_states(name)
        for i in range(size):
            states.setdefault(i, False)
        new_value = (not states[index]) if checked is None else checked
        states[index] = new_value
        self.save_states(name, states)
        return new_value

    def progress(self, name: str) -> int:
        states = self.load_states(name)
        if not states:
            return 0
        checked = sum(1 for value in states.values() if value)
        return js_round(checked / len(states) * 100)

    def section_progress(self, name: str) -> dict[str, int]:
        """Completion per section of one checklist, in catalog order."""
        states = self.load_states(name)
        sections: dict[str, list[bool]] = {}
        for index, item in enumerate(get_checklist(name).items):
            sections.setdefault(item.section, []).append(states.get(index, False))
        return {
            section: js_round(sum(values) / len(values) * 100)
            for section, values in sections.items()
            if values
        }

    def all_progress(self) -> dict[str, int]:
        return {name: self.progress(name) for name in CHECKLIST_NAMES}

    def global_progress(self) -> int:
        values = self.all_progress().values()
        return js_round(sum(values) / len(CHECKLIST_NAMES))

    def stats(self) -> DashboardStats:
        total = completed = critical = 0
        for name in CHECKLIST_NAMES:
            items = get_checklist(name).items
            states = self.load_states(name)
            total += len(states)
            completed += sum(1 for value in states.values() if value)
            critical += sum(
                1
                for index, value in states.items()
                if not value and index < len(items) and items[index].priority is Priority.CRITICAL
            )
        return DashboardStats(total=total, completed=completed, critical=critical)

    def last_updated(self, name: str) -> datetime | None:
        _require_known(name)
        raw = self._store.get(updated_key(name))
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None

    def reset(self, name: str) -> None:
        _require_known(name)
        self._store.remove(states_key(name))
        self._store.remove(updated_key(name))
        logger.info("reset checklist %s", name)

    def reset_all(self) -> None:
        for name in CHECKLIST_NAMES:
            self.reset(name)

    def theme(self) -> str:
        value = self._store.get(THEME_KEY)
        return value if value in THEMES else "light"

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self._store.set(THEME_KEY, theme)

    def toggle_theme(self) -> str:
        new_theme = "light" if self.theme() == "dark" else "dark"
        self.set_theme(new_theme)
        return new_theme

    def subscribe(self, listener: Callable[[StorageEvent], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)


def _require_known(name: str) -> None:
    if name not in CHECKLIST_NAMES:
        raise ValueError(f"Unknown checklist: {name}")
