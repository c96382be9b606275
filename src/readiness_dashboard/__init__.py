"""Checklist progress dashboard.

Tracks per-checklist completion in a key-value store and presents it as a
Textual terminal UI, a small WSGI web view and JSON/CSV/PDF exports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

# No textual import here; the TUI is loaded on demand
from .catalog import CHECKLIST_NAMES, CHECKLISTS, filter_checklists, get_checklist
from .export import export_csv, export_filename, export_json, export_pdf, write_export
from .models import ChecklistDefinition, ChecklistItem, FilterType, Priority
from .state import ChecklistStateStore, DashboardStats, js_round, progress_color

if TYPE_CHECKING:
    from pathlib import Path


def run_dashboard(state_file: Path, export_dir: Path | None = None) -> int:
    """Run the dashboard TUI (lazy import).

    Raises:
        RuntimeError: If Textual is not installed.
    """
    try:
        from .app import run_dashboard as _run_dashboard
    except ImportError as e:
        raise RuntimeError(
            "Dashboard TUI requires 'textual'. Install with: pip install textual"
        ) from e
    return _run_dashboard(state_file, export_dir=export_dir)


__all__ = [
    "CHECKLISTS",
    "CHECKLIST_NAMES",
    "ChecklistDefinition",
    "ChecklistItem",
    "ChecklistStateStore",
    "DashboardStats",
    "FilterType",
    "Priority",
    "export_csv",
    "export_filename",
    "export_json",
    "export_pdf",
    "filter_checklists",
    "get_checklist",
    "js_round",
    "progress_color",
    "run_dashboard",
    "write_export",
]
