from __future__ import annotations

from datetime import UTC, datetime

import pytest

from readiness_core import MemoryStore, StorageEvent
from readiness_dashboard import (
    CHECKLIST_NAMES,
    ChecklistStateStore,
    Priority,
    get_checklist,
    js_round,
    progress_color,
)
from readiness_dashboard.state import checklist_for_key

FIXED_NOW = datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def state(store: MemoryStore) -> ChecklistStateStore:
    return ChecklistStateStore(store, clock=lambda: FIXED_NOW)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.0, 0), (0.49, 0), (0.5, 1), (2.5, 3), (33.333, 33), (66.666, 67), (100.0, 100)],
)
def test_js_round(value: float, expected: int) -> None:
    assert js_round(value) == expected


@pytest.mark.parametrize(
    ("percent", "color"),
    [
        (0, "default"),
        (49, "default"),
        (50, "warning"),
        (79, "warning"),
        (80, "success"),
        (100, "success"),
    ],
)
def test_progress_color(percent: int, color: str) -> None:
    assert progress_color(percent) == color


def test_untouched_checklist_has_zero_progress(state: ChecklistStateStore) -> None:
    assert state.progress("backend") == 0
    assert state.last_updated("backend") is None
    assert state.global_progress() == 0


def test_progress_uses_stored_mapping(store: MemoryStore, state: ChecklistStateStore) -> None:
    store.set("dataChecklistStates", '{"0": true, "1": false, "2": false}')
    assert state.progress("data") == 33

    store.set("dataChecklistStates", '{"0": true, "1": true, "2": false}')
    assert state.progress("data") == 67


def test_toggle_stores_full_mapping(store: MemoryStore, state: ChecklistStateStore) -> None:
    total = len(get_checklist("backend").items)

    assert state.toggle("backend", 0) is True

    states = state.load_states("backend")
    assert len(states) == total
    assert states[0] is True
    assert not any(states[i] for i in range(1, total))
    assert state.progress("backend") == js_round(100 / total)
    assert store.get("backendLastUpdated") == FIXED_NOW.isoformat()
    assert state.last_updated("backend") == FIXED_NOW

    assert state.toggle("backend", 0) is False
    assert state.progress("backend") == 0


def test_toggle_with_explicit_value_and_total(state: ChecklistStateStore) -> None:
    state.toggle("mobile", 1, checked=True, total=4)
    state.toggle("mobile", 1, checked=True, total=4)
    assert state.load_states("mobile") == {0: False, 1: True, 2: False, 3: False}
    assert state.progress("mobile") == 25


@pytest.mark.parametrize(("index", "total"), [(-1, None), (99, None), (4, 4), (0, 0)])
def test_toggle_out_of_range(state: ChecklistStateStore, index: int, total: int | None) -> None:
    with pytest.raises(ValueError):
        state.toggle("devops", index, total=total)


def test_unknown_checklist(state: ChecklistStateStore) -> None:
    with pytest.raises(ValueError, match="Unknown checklist"):
        state.progress("marketing")
    with pytest.raises(ValueError, match="Unknown checklist"):
        state.reset("marketing")


def test_corrupt_states_read_as_empty(store: MemoryStore, state: ChecklistStateStore) -> None:
    store.set("cloudChecklistStates", "{not json")
    assert state.load_states("cloud") == {}
    assert state.progress("cloud") == 0

    store.set("cloudChecklistStates", '["x"]')
    assert state.progress("cloud") == 0

    store.set("cloudChecklistStates", '{"0": true, "first": true}')
    assert state.load_states("cloud") == {0: True}


def test_global_progress_averages_all_checklists(state: ChecklistStateStore) -> None:
    total = len(get_checklist("security").items)
    for index in range(total):
        state.toggle("security", index, checked=True)

    assert state.progress("security") == 100
    assert state.global_progress() == js_round(100 / len(CHECKLIST_NAMES))
    assert state.all_progress()["security"] == 100


def test_stats(state: ChecklistStateStore) -> None:
    items = get_checklist("frontend").items
    first_critical = next(i for i, item in enumerate(items) if item.priority is Priority.CRITICAL)
    state.toggle("frontend", first_critical, checked=True)

    stats = state.stats()

    critical_total = sum(1 for item in items if item.priority is Priority.CRITICAL)
    assert stats.total == len(items)
    assert stats.completed == 1
    assert stats.critical == critical_total - 1


def test_reset_removes_keys(store: MemoryStore, state: ChecklistStateStore) -> None:
    state.toggle("aiml", 2)
    state.toggle("data", 0)

    state.reset("aiml")
    assert store.get("aimlChecklistStates") is None
    assert store.get("aimlLastUpdated") is None
    assert state.progress("aiml") == 0
    assert state.progress("data") > 0

    state.reset_all()
    assert store.keys() == []


def test_theme(store: MemoryStore, state: ChecklistStateStore) -> None:
    assert state.theme() == "light"
    assert state.toggle_theme() == "dark"
    assert store.get("theme") == "dark"
    assert state.toggle_theme() == "light"

    store.set("theme", "solarized")
    assert state.theme() == "light"
    with pytest.raises(ValueError, match="Unknown theme"):
        state.set_theme("solarized")


def test_subscribe_sees_toggles(state: ChecklistStateStore) -> None:
    events: list[StorageEvent] = []
    state.subscribe(events.append)

    state.toggle("cloud", 0)

    assert [e.key for e in events] == ["cloudChecklistStates", "cloudLastUpdated"]
    assert checklist_for_key(events[0].key) == "cloud"
    assert checklist_for_key(events[1].key) is None
    assert checklist_for_key("theme") is None


def test_section_progress(state: ChecklistStateStore) -> None:
    items = get_checklist("backend").items
    sections = list(dict.fromkeys(item.section for item in items))
    assert state.section_progress("backend") == dict.fromkeys(sections, 0)

    first_section = [i for i, item in enumerate(items) if item.section == sections[0]]
    state.toggle("backend", first_section[0], checked=True)

    progress = state.section_progress("backend")
    assert list(progress) == sections
    assert progress[sections[0]] == js_round(100 / len(first_section))
    assert all(progress[s] == 0 for s in sections[1:])

    for index in first_section:
        state.toggle("backend", index, checked=True)
    assert state.section_progress("backend")[sections[0]] == 100
