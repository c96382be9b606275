from __future__ import annotations

import io
import json
import os
from pathlib import Path

import pytest

import readiness_dashboard.web as web
from readiness_core import JsonFileStore, MemoryStore
from readiness_dashboard import ChecklistStateStore, get_checklist
from readiness_dashboard.rate_limit import RateLimiter


class Response:
    def __init__(self) -> None:
        self.status = ""
        self.headers: dict[str, str] = {}

    def start_response(self, status: str, headers: list[tuple[str, str]]):
        self.status = status
        self.headers = dict(headers)
        return lambda _: None


def call(
    app: web.WSGIApp,
    method: str,
    path: str,
    body: bytes = b"",
    query: str = "",
) -> tuple[Response, bytes]:
    response = Response()
    environ = {
        "REQUEST_METHOD": method,
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "REMOTE_ADDR": "127.0.0.1",
        "CONTENT_LENGTH": str(len(body)),
        "wsgi.input": io.BytesIO(body),
    }
    payload = b"".join(app(environ, response.start_response))
    return response, payload


@pytest.fixture
def state() -> ChecklistStateStore:
    return ChecklistStateStore(MemoryStore())


@pytest.fixture
def app(state: ChecklistStateStore) -> web.WSGIApp:
    limiter = RateLimiter(limit=100, window_seconds=60, time_fn=lambda: 0.0)
    return web.create_app(state, limiter)


def test_overview(app: web.WSGIApp) -> None:
    response, body = call(app, "GET", "/")

    assert response.status == "200 OK"
    assert response.headers["Content-Type"].startswith("text/html")
    assert b"Enterprise Readiness Dashboard" in body
    assert b"Frontend Development" in body
    assert b"AI/ML Development" in body
    assert b'href="/export.csv"' in body


def test_overview_filters(app: web.WSGIApp) -> None:
    _, body = call(app, "GET", "/", query="filter=suggested")
    assert b"Mobile Development" in body
    assert b"Backend Development" not in body

    _, body = call(app, "GET", "/", query="q=%3Cscript%3E")
    assert b"No checklists match." in body
    assert b"<script>" not in body
    assert b"&lt;script&gt;" in body


def test_checklist_page(app: web.WSGIApp, state: ChecklistStateStore) -> None:
    state.toggle("backend", 1, checked=True)

    response, body = call(app, "GET", "/checklists/backend")

    assert response.status == "200 OK"
    assert b'name="item" value="1" checked' in body
    assert b'name="item" value="0">' in body
    assert b"<legend>API Design (33%)</legend>" in body


def test_save_checklist(app: web.WSGIApp, state: ChecklistStateStore) -> None:
    response, _ = call(app, "POST", "/checklists/backend", body=b"item=0&item=2&item=oops")

    assert response.status == "303 See Other"
    assert response.headers["Location"] == "/checklists/backend"
    states = state.load_states("backend")
    assert len(states) == len(get_checklist("backend").items)
    assert [i for i, checked in states.items() if checked] == [0, 2]


def test_reset(app: web.WSGIApp, state: ChecklistStateStore) -> None:
    state.toggle("backend", 0)
    state.toggle("cloud", 0)

    response, _ = call(app, "POST", "/reset", body=b"checklist=backend")
    assert response.status == "303 See Other"
    assert state.progress("backend") == 0
    assert state.progress("cloud") > 0

    call(app, "POST", "/reset")
    assert state.progress("cloud") == 0


@pytest.mark.parametrize(
    ("method", "path", "status"),
    [
        ("GET", "/checklists/marketing", "404 Not Found"),
        ("GET", "/export.xlsx", "404 Not Found"),
        ("GET", "/nowhere", "404 Not Found"),
        ("POST", "/reset", "303 See Other"),
        ("GET", "/reset", "405 Method Not Allowed"),
        ("POST", "/", "405 Method Not Allowed"),
        ("DELETE", "/checklists/backend", "405 Method Not Allowed"),
    ],
)
def test_status_codes(app: web.WSGIApp, method: str, path: str, status: str) -> None:
    response, _ = call(app, method, path)
    assert response.status == status


def test_reset_unknown_checklist(app: web.WSGIApp) -> None:
    response, _ = call(app, "POST", "/reset", body=b"checklist=marketing")
    assert response.status == "404 Not Found"


def test_export(app: web.WSGIApp, state: ChecklistStateStore) -> None:
    state.toggle("security", 0, checked=True, total=2)

    response, body = call(app, "GET", "/export.json")

    assert response.status == "200 OK"
    assert response.headers["Content-Type"] == "application/json"
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="checklist-export-')
    assert disposition.endswith('.json"')
    assert json.loads(body)["progress"]["security"] == 50

    response, body = call(app, "GET", "/export.pdf")
    assert response.headers["Content-Type"] == "application/pdf"
    assert body.startswith(b"%PDF")


def test_rate_limited_posts(state: ChecklistStateStore) -> None:
    limiter = RateLimiter(limit=1, window_seconds=60, time_fn=lambda: 0.0)
    app = web.create_app(state, limiter)

    first, _ = call(app, "POST", "/checklists/data", body=b"item=0")
    second, body = call(app, "POST", "/checklists/data", body=b"item=1")
    third, _ = call(app, "GET", "/")

    assert first.status == "303 See Other"
    assert second.status == "429 Too Many Requests"
    assert second.headers["Retry-After"] == "60"
    assert body == b"Too many requests"
    assert third.status == "200 OK"
    assert state.load_states("data")[0] is True


def test_picks_up_external_writes(tmp_path: Path) -> None:
    path = tmp_path / "dashboard.json"
    state = ChecklistStateStore(JsonFileStore(path))
    app = web.create_app(state)

    writer = ChecklistStateStore(JsonFileStore(path))
    writer.toggle("devops", 0, checked=True, total=1)
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

    _, body = call(app, "GET", "/checklists/devops")
    assert b">100%</div>" in body


def test_default_application(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("READINESS_STATE_FILE", str(tmp_path / "state.json"))
    monkeypatch.setattr(web, "_APP", None)

    response = Response()
    environ = {"REQUEST_METHOD": "GET", "PATH_INFO": "/", "REMOTE_ADDR": "127.0.0.1"}
    body = b"".join(web.application(environ, response.start_response))

    assert response.status == "200 OK"
    assert b"Enterprise Readiness Dashboard" in body
