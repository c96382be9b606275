from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FilterType(str, Enum):
    ALL = "all"
    REQUIRED = "required"
    SUGGESTED = "suggested"


@dataclass(frozen=True)
class ChecklistItem:
    section: str
    title: str
    description: str
    priority: Priority


@dataclass(frozen=True)
class ChecklistDefinition:
    """A dashboard card: one domain checklist and its items."""

    name: str
    title: str
    description: str
    priority: Priority
    items: tuple[ChecklistItem, ...]

    @property
    def badge(self) -> str:
        return f"{self.priority.value.title()} Priority"

    def matches(self, term: str, filter_type: FilterType) -> bool:
        term = term.strip().lower()
        badge = self.badge.lower()
        matches_search = (
            term in self.title.lower() or term in self.description.lower() or term in badge
        )
        matches_filter = (
            filter_type is FilterType.ALL
            or (filter_type is FilterType.REQUIRED and "high" in badge)
            or (filter_type is FilterType.SUGGESTED and "medium" in badge)
        )
        return matches_search and matches_filter
