"""Browser view of the checklist dashboard as a plain WSGI application."""

from __future__ import annotations

import html
import logging
from collections.abc import Callable, Iterable
from typing import Any, BinaryIO, cast
from urllib.parse import parse_qs

from readiness_core import JsonFileStore, redact

from .catalog import filter_checklists, get_checklist
from .export import CONTENT_TYPES, EXPORT_FORMATS, export_filename, render_export
from .models import FilterType
from .rate_limit import RateLimiter
from .state import ChecklistStateStore, progress_color

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 64 * 1024

BAR_COLORS = {"success": "#2e7d32", "warning": "#f9a825", "default": "#1565c0"}

Environ = dict[str, Any]
StartResponse = Callable[[str, list[tuple[str, str]]], Callable[[bytes], Any]]
WSGIApp = Callable[[Environ, StartResponse], Iterable[bytes]]

HTML_HEADERS = [("Content-Type", "text/html; charset=utf-8")]


def create_app(
    state: ChecklistStateStore,
    limiter: RateLimiter | None = None,
) -> WSGIApp:
    rate_limiter = limiter or RateLimiter(limit=30, window_seconds=60)

    def app(environ: Environ, start_response: StartResponse) -> Iterable[bytes]:
        path = str(environ.get("PATH_INFO", "/")) or "/"
        method = str(environ.get("REQUEST_METHOD", "GET")).upper()
        client_ip = str(environ.get("REMOTE_ADDR", "unknown"))

        store = state.store
        if isinstance(store, JsonFileStore) and store.changed_on_disk():
            store.reload()

        if method == "POST":
            decision = rate_limiter.allow(client_ip)
            if not decision.allowed:
                retry_after = str(int(decision.retry_after or 0))
                start_response(
                    "429 Too Many Requests",
                    [("Content-Type", "text/plain"), ("Retry-After", retry_after)],
                )
                return [b"Too many requests"]

        if path == "/":
            if method != "GET":
                return _method_not_allowed(start_response)
            query = parse_qs(str(environ.get("QUERY_STRING", "")))
            return _overview(state, query, start_response)

        if path == "/reset":
            if method != "POST":
                return _method_not_allowed(start_response)
            params = _read_form(environ)
            names = params.get("checklist", [])
            try:
                for name in names:
                    state.reset(name)
                if not names:
                    state.reset_all()
            except ValueError as exc:
                return _not_found(start_response, str(exc))
            return _redirect(start_response, "/")

        if path.startswith("/export."):
            fmt = path.removeprefix("/export.")
            if fmt not in EXPORT_FORMATS:
                return _not_found(start_response, "Unknown export format")
            payload = render_export(state, fmt)
            start_response(
                "200 OK",
                [
                    ("Content-Type", CONTENT_TYPES[fmt]),
                    (
                        "Content-Disposition",
                        f'attachment; filename="{export_filename(fmt)}"',
                    ),
                ],
            )
            return [payload]

        if path.startswith("/checklists/"):
            name = path.removeprefix("/checklists/").strip("/")
            try:
                checklist = get_checklist(name)
            except ValueError as exc:
                return _not_found(start_response, str(exc))
            if method == "POST":
                params = _read_form(environ)
                selected = {int(v) for v in params.get("item", []) if v.isdigit()}
                states = {i: i in selected for i in range(len(checklist.items))}
                state.save_states(name, states)
                return _redirect(start_response, f"/checklists/{name}")
            if method != "GET":
                return _method_not_allowed(start_response)
            return _checklist_page(state, name, start_response)

        return _not_found(start_response, "Not found")

    return app


def _overview(
    state: ChecklistStateStore,
    query: dict[str, list[str]],
    start_response: StartResponse,
) -> Iterable[bytes]:
    term = query.get("q", [""])[0]
    raw_filter = query.get("filter", ["all"])[0]
    try:
        filter_type = FilterType(raw_filter)
    except ValueError:
        filter_type = FilterType.ALL

    stats = state.stats()
    overall = state.global_progress()
    parts = [
        _bar("Overall", overall),
        f"<p>Total items: {stats.total} &middot; Completed: {stats.completed} "
        f"&middot; Critical open: {stats.critical}</p>",
        '<form method="GET">'
        f'<input name="q" value="{html.escape(term)}" placeholder="Search checklists">'
        '<select name="filter">',
    ]
    for option in FilterType:
        selected = " selected" if option is filter_type else ""
        parts.append(
            f'<option value="{option.value}"{selected}>{option.value.title()}</option>'
        )
    parts.append('</select><button type="submit">Filter</button></form>')

    cards = filter_checklists(term, filter_type)
    if not cards:
        parts.append("<p>No checklists match.</p>")
    for checklist in cards:
        link = f"/checklists/{checklist.name}"
        parts.append(
            '<section class="card">'
            f'<h2><a href="{html.escape(link)}">{html.escape(checklist.title)}</a></h2>'
            f"<p>{html.escape(checklist.description)}</p>"
            f'<span class="badge">{html.escape(checklist.badge)}</span>'
            + _bar(checklist.title, state.progress(checklist.name))
            + "</section>"
        )

    parts.append(
        '<form method="POST" action="/reset"><button type="submit">Reset all</button></form>'
    )
    parts.append(
        "<p>Export: "
        + " ".join(f'<a href="/export.{fmt}">{fmt.upper()}</a>' for fmt in EXPORT_FORMATS)
        + "</p>"
    )
    start_response("200 OK", HTML_HEADERS)
    return [_render_html("Enterprise Readiness Dashboard", "\n".join(parts)).encode("utf-8")]


def _checklist_page(
    state: ChecklistStateStore,
    name: str,
    start_response: StartResponse,
) -> Iterable[bytes]:
    checklist = get_checklist(name)
    states = state.load_states(name)
    section_progress = state.section_progress(name)
    parts = [_bar(checklist.title, state.progress(name)), '<form method="POST">']
    current_section = None
    for index, item in enumerate(checklist.items):
        if item.section != current_section:
            if current_section is not None:
                parts.append("</fieldset>")
            percent = section_progress.get(item.section, 0)
            parts.append(
                f"<fieldset><legend>{html.escape(item.section)} ({percent}%)</legend>"
            )
            current_section = item.section
        checked = " checked" if states.get(index) else ""
        parts.append(
            f'<label><input type="checkbox" name="item" value="{index}"{checked}> '
            f"<strong>{html.escape(item.title)}</strong> "
            f"<em>[{item.priority.value}]</em> {html.escape(item.description)}</label><br>"
        )
    if current_section is not None:
        parts.append("</fieldset>")
    parts.append('<button type="submit">Save</button></form>')
    parts.append(
        '<form method="POST" action="/reset">'
        f'<input type="hidden" name="checklist" value="{html.escape(name)}">'
        '<button type="submit">Reset checklist</button></form>'
    )
    parts.append('<p><a href="/">Back to dashboard</a></p>')
    start_response("200 OK", HTML_HEADERS)
    return [_render_html(checklist.title, "\n".join(parts)).encode("utf-8")]


def _bar(label: str, percent: int) -> str:
    color = BAR_COLORS[progress_color(percent)]
    return (
        f'<div class="progress" aria-label="{html.escape(label)} progress">'
        f'<div style="width:{percent}%;background:{color}">{percent}%</div></div>'
    )


def _read_form(environ: Environ) -> dict[str, list[str]]:
    try:
        length = int(str(environ.get("CONTENT_LENGTH", "0")) or 0)
    except ValueError:
        length = 0
    length = max(0, min(length, MAX_BODY_BYTES))
    input_stream = environ.get("wsgi.input")
    body = cast(BinaryIO, input_stream).read(length) if length and input_stream else b""
    return parse_qs(body.decode("utf-8", errors="replace"))


def _redirect(start_response: StartResponse, location: str) -> Iterable[bytes]:
    start_response("303 See Other", [("Location", location), ("Content-Type", "text/plain")])
    return [b""]


def _not_found(start_response: StartResponse, message: str) -> Iterable[bytes]:
    logger.info("request rejected: %s", redact(message))
    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"Not found"]


def _method_not_allowed(start_response: StartResponse) -> Iterable[bytes]:
    start_response("405 Method Not Allowed", [("Content-Type", "text/plain")])
    return [b"Method not allowed"]


def _render_html(title: str, body: str) -> str:
    return (
        "<!doctype html>"
        '<html><head><meta charset="utf-8"><title>'
        + html.escape(title)
        + "</title><style>.progress{background:#eee;width:100%}"
        ".progress div{color:#fff;padding:2px 4px;min-width:2em}"
        ".card{border:1px solid #ccc;padding:8px;margin:8px 0}</style>"
        "</head><body><h1>"
        + html.escape(title)
        + "</h1><div>"
        + body
        + "</div></body></html>"
    )


def _default_app() -> WSGIApp:
    from readiness.paths import state_path

    return create_app(ChecklistStateStore(JsonFileStore(state_path())))


def application(environ: Environ, start_response: StartResponse) -> Iterable[bytes]:
    global _APP
    if _APP is None:
        _APP = _default_app()
    return _APP(environ, start_response)


_APP: WSGIApp | None = None
