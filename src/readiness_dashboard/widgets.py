"""Custom widgets for the dashboard TUI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.progress_bar import ProgressBar
from rich.text import Text
from textual.widgets import Static

from .state import progress_color

if TYPE_CHECKING:
    from datetime import datetime

    from .models import ChecklistDefinition

__all__ = [
    "ChecklistCard",
    "progress_renderable",
    "BAR_STYLES",
    "BADGE_STYLES",
]

BAR_STYLES = {
    "success": "green",
    "warning": "yellow",
    "default": "blue",
}

BADGE_STYLES = {
    "critical": "bold white on red",
    "high": "bold red",
    "medium": "bold yellow",
    "low": "dim",
}


def progress_renderable(percent: int, width: int = 40) -> Group:
    style = BAR_STYLES[progress_color(percent)]
    bar = ProgressBar(total=100, completed=percent, width=width, complete_style=style)
    return Group(bar, Text(f"{percent}%", style=style))


class ChecklistCard(Static):
    """Dashboard card: title, priority badge, description and progress."""

    DEFAULT_CSS = """
    ChecklistCard {
        height: auto;
        padding: 0 1;
        margin: 0 0 1 0;
        border: solid $primary-background;
    }
    ChecklistCard.selected {
        border: solid $accent;
        background: $boost;
    }
    """

    def __init__(
        self,
        checklist: ChecklistDefinition,
        percent: int = 0,
        last_updated: datetime | None = None,
        selected: bool = False,
        id: str | None = None,
    ) -> None:
        super().__init__(id=id)
        self.checklist = checklist
        self.percent = percent
        self.last_updated = last_updated
        self.set_class(selected, "selected")

    def on_mount(self) -> None:
        self.update(self._render_card())

    def set_progress(self, percent: int, last_updated: datetime | None) -> None:
        self.percent = percent
        self.last_updated = last_updated
        self.update(self._render_card())

    def set_selected(self, selected: bool) -> None:
        self.set_class(selected, "selected")

    def _render_card(self) -> Group:
        header = Text()
        header.append(self.checklist.title, style="bold")
        header.append("  ")
        header.append(
            self.checklist.badge,
            style=BADGE_STYLES.get(self.checklist.priority.value, "dim"),
        )
        description = Text(self.checklist.description, style="dim")
        parts: list[Text | Group] = [header, description, progress_renderable(self.percent)]
        if self.last_updated is not None:
            stamp = self.last_updated.strftime("%Y-%m-%d %H:%M")
            parts.append(Text(f"Last updated {stamp}", style="italic dim"))
        return Group(*parts)
