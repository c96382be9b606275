"""Rich CLI output utilities for readiness.

Provides terminal rendering with TTY-awareness, a shared theme, and
sanitization of untrusted text before it reaches the terminal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .results import Bucket

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .results import ValidationResults

__all__ = [
    "console",
    "splash",
    "render_results",
    "render_summary",
    "render_progress",
    "sanitize_for_terminal",
    "sanitize_error",
    "SummaryRow",
    "ProgressRow",
]

ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

READINESS_THEME = Theme(
    {
        "info": "dim cyan",
        "warning": "yellow",
        "danger": "bold red",
        "success": "bold green",
        "header": "bold white on blue",
        "muted": "dim white",
        "brand": "bold cyan",
    }
)

console = Console(theme=READINESS_THEME)

VERSION = "1.0.0"

# Plain-text section layout: (bucket, heading, marker)
SECTIONS: tuple[tuple[Bucket, str, str], ...] = (
    (Bucket.PASSED, "Passed Checks:", "✅ "),
    (Bucket.FAILED, "Failed Checks:", "❌ "),
    (Bucket.WARNING, "Warnings:", "⚠️  "),
    (Bucket.NOT_CHECKED, "Not Checked:", "❓ "),
)

PROGRESS_STYLES = {"success": "green", "warning": "yellow"}

SECTION_STYLES = {
    Bucket.PASSED: "success",
    Bucket.FAILED: "danger",
    Bucket.WARNING: "warning",
    Bucket.NOT_CHECKED: "muted",
}


def _plain(force_plain: bool) -> bool:
    return force_plain or not console.is_terminal


def _capture(renderable: object) -> str:
    with console.capture() as capture:
        console.print(renderable)
    result: str = capture.get()
    return result


def splash(*, force_plain: bool = False) -> str:
    """Render the readiness banner.

    Args:
        force_plain: If True, return plain text regardless of TTY.

    Returns:
        Banner string for display.
    """
    if _plain(force_plain):
        return f"readiness v{VERSION} - Enterprise Readiness Checklists"

    panel = Panel(
        Text("readiness", style="brand"),
        subtitle=f"[muted]v{VERSION} · Enterprise Readiness Checklists[/muted]",
        border_style="blue",
        padding=(0, 2),
    )
    return _capture(panel)


def render_results(
    title: str,
    results: ValidationResults,
    *,
    force_plain: bool = False,
) -> str:
    """Render the four result buckets of one validator run.

    Plain output keeps the fixed headers and emoji markers so it stays
    greppable in CI logs.
    """
    heading = f"{title} Validation Results:"
    if _plain(force_plain):
        lines = ["", heading, "=" * len(heading)]
        for bucket, section, marker in SECTIONS:
            lines.append("")
            lines.append(section)
            lines.extend(marker + sanitize_for_terminal(m) for m in results.bucket(bucket))
        return "\n".join(lines)

    panels = []
    for bucket, section, marker in SECTIONS:
        body = Text()
        messages = results.bucket(bucket)
        for index, message in enumerate(messages):
            if index:
                body.append("\n")
            body.append(marker + sanitize_for_terminal(message))
        if not messages:
            body.append("none", style="muted")
        panels.append(
            Panel(
                body,
                title=f"[{SECTION_STYLES[bucket]}]{section.rstrip(':')} ({len(messages)})[/]",
                title_align="left",
                border_style=SECTION_STYLES[bucket].split()[-1],
            )
        )
    return _capture(Group(Text(heading, style="header"), *panels))


@dataclass
class SummaryRow:
    """Bucket counts for one validator in the run summary."""

    domain: str
    passed: int
    failed: int
    warnings: int
    not_checked: int


def render_summary(rows: Sequence[SummaryRow], *, force_plain: bool = False) -> str:
    if _plain(force_plain):
        lines = ["Validation Summary:"]
        for row in rows:
            lines.append(
                f"  {sanitize_for_terminal(row.domain)}: {row.passed} passed, "
                f"{row.failed} failed, {row.warnings} warnings, {row.not_checked} not checked"
            )
        return "\n".join(lines)

    table = Table(title="Validation Summary", show_header=True, header_style="bold")
    table.add_column("Domain", style="cyan")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Warnings", justify="right", style="yellow")
    table.add_column("Not checked", justify="right", style="muted")
    for row in rows:
        table.add_row(
            sanitize_for_terminal(row.domain),
            str(row.passed),
            str(row.failed),
            str(row.warnings),
            str(row.not_checked),
        )
    return _capture(table)


@dataclass
class ProgressRow:
    """Completion of one dashboard checklist."""

    checklist: str
    percent: int
    color: str
    last_updated: str | None = None


def render_progress(
    rows: Sequence[ProgressRow],
    overall: int,
    *,
    force_plain: bool = False,
) -> str:
    if _plain(force_plain):
        lines = ["Checklist Progress:"]
        for row in rows:
            suffix = f" (updated {row.last_updated})" if row.last_updated else ""
            lines.append(f"  {row.checklist}: {row.percent}%{suffix}")
        lines.append(f"  overall: {overall}%")
        return "\n".join(lines)

    table = Table(title="Checklist Progress", show_header=True, header_style="bold")
    table.add_column("Checklist", style="cyan")
    table.add_column("Progress")
    table.add_column("%", justify="right")
    table.add_column("Last updated", style="muted")
    for row in rows:
        table.add_row(
            row.checklist,
            ProgressBar(
                total=100,
                completed=row.percent,
                width=30,
                complete_style=PROGRESS_STYLES.get(row.color, "bar.complete"),
            ),
            f"{row.percent}%",
            row.last_updated or "-",
        )
    table.add_section()
    table.add_row("overall", ProgressBar(total=100, completed=overall, width=30), f"{overall}%", "")
    return _capture(table)


def sanitize_for_terminal(text: str) -> str:
    """Strip ANSI escape sequences from untrusted content.

    File paths and command output end up in result messages; an escape
    sequence in either could rewrite the terminal or hide a failure.
    """
    return ANSI_ESCAPE_PATTERN.sub("", text)


def sanitize_error(error: str | Exception, *, max_length: int = 200) -> str:
    """Sanitize error messages for user display.

    Args:
        error: Error message or exception to sanitize.
        max_length: Maximum length of returned message.

    Returns:
        Sanitized, truncated error message.
    """
    message = str(error) if isinstance(error, Exception) else error
    message = ANSI_ESCAPE_PATTERN.sub("", message)
    message = re.sub(r"/[^\s:]+", "[path]", message)
    message = re.sub(r"\\[^\s:]+", "[path]", message)

    if len(message) > max_length:
        message = message[:max_length] + "..."

    return message
