"""Textual screens for the readiness dashboard.

The dashboard lists one card per checklist with live progress, a search box
and a priority filter. Opening a card shows its items as checkboxes; every
toggle is persisted straight away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Checkbox, Footer, Header, Input, Label, Select, Static

from .catalog import CHECKLISTS, get_checklist
from .export import EXPORT_FORMATS
from .models import FilterType
from .widgets import ChecklistCard, progress_renderable

if TYPE_CHECKING:
    from .state import ChecklistStateStore

__all__ = [
    "DashboardScreen",
    "ChecklistScreen",
    "ConfirmScreen",
    "ExportScreen",
]

FILTER_OPTIONS = [
    ("All checklists", FilterType.ALL.value),
    ("Required (high priority)", FilterType.REQUIRED.value),
    ("Suggested (medium priority)", FilterType.SUGGESTED.value),
]


class DashboardScreen(Screen[None]):
    """Overview of every checklist.

    Bindings:
        j/down: Next card
        k/up: Previous card
        enter: Open checklist
        /: Focus search
        e: Export progress
        r: Reset all checklists
        t: Toggle theme
        q: Quit
    """

    BINDINGS = [
        Binding("j", "cursor_down", "Next"),
        Binding("k", "cursor_up", "Previous"),
        Binding("down", "cursor_down", "Next", show=False),
        Binding("up", "cursor_up", "Previous", show=False),
        Binding("enter", "open_checklist", "Open"),
        Binding("slash", "focus_search", "Search"),
        Binding("e", "export", "Export"),
        Binding("r", "reset_all", "Reset All"),
        Binding("t", "toggle_theme", "Theme"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    DashboardScreen {
        layout: vertical;
    }
    #summary {
        height: auto;
        padding: 1;
        border-bottom: solid $primary;
    }
    #controls {
        height: auto;
    }
    #search {
        width: 1fr;
    }
    #filter {
        width: 36;
    }
    #cards {
        height: 1fr;
        padding: 1;
    }
    #empty {
        padding: 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        state: ChecklistStateStore,
        name: str | None = None,
        id: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id)
        self.state = state
        self.search_term = ""
        self.filter_type = FilterType.ALL
        self.selected_index = 0
        self._cards: list[ChecklistCard] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="summary"):
            yield Static(id="global-progress")
            yield Static(id="stats")
        with Horizontal(id="controls"):
            yield Input(placeholder="Search checklists...", id="search")
            yield Select(
                FILTER_OPTIONS,
                value=FilterType.ALL.value,
                allow_blank=False,
                id="filter",
            )
        with VerticalScroll(id="cards"):
            for checklist in CHECKLISTS:
                card = ChecklistCard(
                    checklist,
                    percent=self.state.progress(checklist.name),
                    last_updated=self.state.last_updated(checklist.name),
                    id=f"card-{checklist.name}",
                )
                self._cards.append(card)
                yield card
            yield Label("No checklists match your search.", id="empty")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_state()
        self._apply_filter()

    def on_screen_resume(self) -> None:
        self.refresh_state()

    def refresh_state(self) -> None:
        """Repaint global progress, stats and every card from the store."""
        self.query_one("#global-progress", Static).update(
            progress_renderable(self.state.global_progress(), width=60)
        )
        stats = self.state.stats()
        text = Text()
        text.append(f"Total items: {stats.total}  ", style="bold")
        text.append(f"Completed: {stats.completed}  ", style="green")
        text.append(f"Critical open: {stats.critical}", style="red" if stats.critical else "dim")
        self.query_one("#stats", Static).update(text)
        for card in self._cards:
            name = card.checklist.name
            card.set_progress(self.state.progress(name), self.state.last_updated(name))

    def _visible_cards(self) -> list[ChecklistCard]:
        return [card for card in self._cards if card.display]

    def _apply_filter(self) -> None:
        for card in self._cards:
            card.display = card.checklist.matches(self.search_term, self.filter_type)
        visible = self._visible_cards()
        self.query_one("#empty", Label).display = not visible
        self._update_selection(0)

    def _update_selection(self, new_index: int) -> None:
        visible = self._visible_cards()
        for card in self._cards:
            card.set_selected(False)
        if not visible:
            self.selected_index = 0
            return
        self.selected_index = max(0, min(new_index, len(visible) - 1))
        visible[self.selected_index].set_selected(True)
        visible[self.selected_index].scroll_visible()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.search_term = event.value
            self._apply_filter()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "filter" and isinstance(event.value, str):
            self.filter_type = FilterType(event.value)
            self._apply_filter()

    def action_cursor_down(self) -> None:
        """Move selection down."""
        self._update_selection(self.selected_index + 1)

    def action_cursor_up(self) -> None:
        """Move selection up."""
        self._update_selection(self.selected_index - 1)

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_open_checklist(self) -> None:
        """Open the selected checklist."""
        visible = self._visible_cards()
        if not visible:
            return
        name = visible[self.selected_index].checklist.name
        self.app.push_screen(ChecklistScreen(self.state, name))

    def action_export(self) -> None:
        def handle(fmt: str | None) -> None:
            if fmt:
                export = getattr(self.app, "export_progress", None)
                if export is not None:
                    export(fmt)

        self.app.push_screen(ExportScreen(), handle)

    def action_reset_all(self) -> None:
        """Reset every checklist after confirmation."""

        def handle(confirmed: bool | None) -> None:
            if confirmed:
                self.state.reset_all()
                self.refresh_state()
                self.notify("All checklists reset", severity="information")

        self.app.push_screen(
            ConfirmScreen("Reset progress for ALL checklists? This cannot be undone."),
            handle,
        )

    def action_toggle_theme(self) -> None:
        toggle = getattr(self.app, "toggle_theme", None)
        if toggle is not None:
            toggle()

    def action_quit(self) -> None:
        """Quit the application."""
        self.app.exit(0)


class ChecklistScreen(Screen[None]):
    """Items of one checklist as checkboxes grouped by section.

    Bindings:
        r: Reset this checklist
        escape: Back to dashboard
    """

    BINDINGS = [
        Binding("r", "reset", "Reset"),
        Binding("escape", "go_back", "Back"),
    ]

    DEFAULT_CSS = """
    ChecklistScreen {
        layout: vertical;
    }
    #checklist-header {
        height: auto;
        padding: 1;
        border-bottom: solid $primary;
    }
    #items {
        height: 1fr;
        padding: 1;
    }
    .section-title {
        margin-top: 1;
        text-style: bold;
        color: $accent;
    }
    """

    def __init__(
        self,
        state: ChecklistStateStore,
        checklist_name: str,
        name: str | None = None,
        id: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id)
        self.state = state
        self.checklist = get_checklist(checklist_name)
        self._section_labels: dict[str, Label] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="checklist-header"):
            yield Label(Text(self.checklist.title, style="bold"))
            yield Static(id="checklist-progress")
        states = self.state.load_states(self.checklist.name)
        section_progress = self.state.section_progress(self.checklist.name)
        with VerticalScroll(id="items"):
            section = None
            for index, item in enumerate(self.checklist.items):
                if item.section != section:
                    section = item.section
                    self._section_labels[section] = Label(
                        _section_title(section, section_progress.get(section, 0)),
                        classes="section-title",
                    )
                    yield self._section_labels[section]
                label = Text(item.title, style="bold")
                label.append(f" ({item.priority.value}) ", style="dim")
                label.append(item.description)
                yield Checkbox(label, value=states.get(index, False), id=f"item-{index}")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_state()

    def refresh_state(self) -> None:
        """Sync checkboxes, section titles and the progress bar with the store."""
        states = self.state.load_states(self.checklist.name)
        for checkbox in self.query(Checkbox):
            index = _item_index(checkbox)
            if index is None:
                continue
            value = states.get(index, False)
            if checkbox.value != value:
                with checkbox.prevent(Checkbox.Changed):
                    checkbox.value = value
        self.query_one("#checklist-progress", Static).update(
            progress_renderable(self.state.progress(self.checklist.name), width=60)
        )
        for section, percent in self.state.section_progress(self.checklist.name).items():
            label = self._section_labels.get(section)
            if label is not None:
                label.update(_section_title(section, percent))

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        index = _item_index(event.checkbox)
        if index is None:
            return
        self.state.toggle(self.checklist.name, index, checked=event.value)
        self.refresh_state()

    def action_reset(self) -> None:
        """Reset this checklist after confirmation."""

        def handle(confirmed: bool | None) -> None:
            if confirmed:
                self.state.reset(self.checklist.name)
                self.refresh_state()
                self.notify(f"{self.checklist.title} reset", severity="information")

        self.app.push_screen(
            ConfirmScreen(f"Reset progress for {self.checklist.title}?"),
            handle,
        )

    def action_go_back(self) -> None:
        """Return to the dashboard."""
        self.app.pop_screen()


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation dialog."""

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }
    #confirm-dialog {
        width: 60;
        height: auto;
        border: thick $warning;
        background: $surface;
        padding: 1 2;
    }
    #confirm-buttons {
        height: auto;
        margin-top: 1;
        align: center middle;
    }
    #confirm-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.message)
            with Horizontal(id="confirm-buttons"):
                yield Button("Yes", variant="error", id="yes")
                yield Button("No", variant="primary", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class ExportScreen(ModalScreen[str | None]):
    """Pick an export format."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    ExportScreen {
        align: center middle;
    }
    #export-dialog {
        width: 50;
        height: auto;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }
    #export-buttons {
        height: auto;
        margin-top: 1;
    }
    #export-buttons Button {
        margin: 0 1;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="export-dialog"):
            yield Label("Export checklist progress as:")
            with Horizontal(id="export-buttons"):
                for fmt in EXPORT_FORMATS:
                    yield Button(fmt.upper(), id=f"export-{fmt}")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        self.dismiss(button_id.removeprefix("export-") or None)

    def action_cancel(self) -> None:
        self.dismiss(None)


def _section_title(section: str, percent: int) -> str:
    return f"{section} ({percent}%)"


def _item_index(checkbox: Checkbox) -> int | None:
    checkbox_id = checkbox.id or ""
    if not checkbox_id.startswith("item-"):
        return None
    try:
        return int(checkbox_id.removeprefix("item-"))
    except ValueError:
        return None
