"""Textual application for the readiness dashboard."""

from __future__ import annotations

import logging
from pathlib import Path

from textual.app import App
from textual.binding import Binding

from readiness_core import JsonFileStore, StorageEvent, redact

from .export import write_export
from .screens import ChecklistScreen, DashboardScreen
from .state import THEME_KEY, ChecklistStateStore, checklist_for_key

logger = logging.getLogger(__name__)

__all__ = ["DashboardApp", "run_dashboard"]

POLL_INTERVAL_SECONDS = 1.0

TEXTUAL_THEMES = {"light": "textual-light", "dark": "textual-dark"}


class DashboardApp(App[int]):
    """Checklist progress dashboard.

    Changes made in this app reach open screens through the store
    subscription; changes written by other processes are picked up by
    polling the state file.
    """

    TITLE = "Enterprise Readiness Dashboard"
    SUB_TITLE = "Checklist progress"

    BINDINGS = [Binding("ctrl+c", "quit", "Quit", show=False)]

    def __init__(
        self,
        store: JsonFileStore,
        export_dir: Path | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        super().__init__()
        self.store = store
        self.state = ChecklistStateStore(store)
        self.export_dir = export_dir or Path.cwd()
        self.poll_interval = poll_interval
        self._unsubscribe = self.state.subscribe(self._on_storage_event)

    def on_mount(self) -> None:
        self.theme = TEXTUAL_THEMES[self.state.theme()]
        self.push_screen(DashboardScreen(self.state))
        self.set_interval(self.poll_interval, self._poll_state_file)

    def on_unmount(self) -> None:
        self._unsubscribe()

    def _poll_state_file(self) -> None:
        if not self.store.changed_on_disk():
            return
        try:
            self.store.reload()
        except (OSError, ValueError) as exc:
            logger.warning("state reload failed: %s", redact(str(exc)))

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key == THEME_KEY:
            self.theme = TEXTUAL_THEMES[self.state.theme()]
            return
        if checklist_for_key(event.key) is None:
            return
        screen = self.screen
        if isinstance(screen, DashboardScreen | ChecklistScreen) and screen.is_mounted:
            screen.refresh_state()

    def toggle_theme(self) -> None:
        self.state.toggle_theme()

    def export_progress(self, fmt: str) -> None:
        try:
            path = write_export(self.state, fmt, self.export_dir)
        except (OSError, ValueError) as exc:
            self.notify(f"Export failed: {redact(str(exc))}", severity="error")
            return
        self.notify(f"Exported to {path}", severity="information")


def run_dashboard(
    state_file: Path,
    export_dir: Path | None = None,
) -> int:
    """Run the dashboard TUI.

    Args:
        state_file: JSON file holding checklist progress.
        export_dir: Directory for exported progress files.

    Returns:
        Exit code.
    """
    app = DashboardApp(JsonFileStore(state_file), export_dir=export_dir)
    result = app.run()
    return result if result is not None else 0
