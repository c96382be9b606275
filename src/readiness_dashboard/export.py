from __future__ import annotations

import csv
import io
import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from readiness_core import write_atomic

from .catalog import get_checklist
from .state import ChecklistStateStore

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv", "pdf")
CONTENT_TYPES = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
    "pdf": "application/pdf",
}


def export_json(state: ChecklistStateStore, now: datetime | None = None) -> bytes:
    now = now or datetime.now(UTC)
    data = {"timestamp": now.isoformat(), "progress": state.all_progress()}
    return json.dumps(data, indent=2).encode("utf-8")


def export_csv(state: ChecklistStateStore) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Checklist", "Progress"])
    for name, percent in state.all_progress().items():
        writer.writerow([name, percent])
    return buffer.getvalue().encode("utf-8")


def export_pdf(state: ChecklistStateStore, now: datetime | None = None) -> bytes:
    now = now or datetime.now(UTC)
    stats = state.stats()
    lines = [
        "Enterprise Readiness Progress",
        f"Generated: {now.strftime('%Y-%m-%d %H:%M UTC')}",
        "",
    ]
    for name, percent in state.all_progress().items():
        lines.append(f"{get_checklist(name).title}: {percent}%")
    lines += [
        "",
        f"Overall: {state.global_progress()}%",
        f"Items tracked: {stats.total}  Completed: {stats.completed}  "
        f"Critical open: {stats.critical}",
    ]
    return _wrap_pdf(_build_content_stream(lines))


def export_filename(fmt: str, now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"checklist-export-{now.strftime('%Y-%m-%dT%H-%M-%S')}.{fmt}"


def render_export(state: ChecklistStateStore, fmt: str, now: datetime | None = None) -> bytes:
    if fmt == "json":
        return export_json(state, now)
    if fmt == "csv":
        return export_csv(state)
    if fmt == "pdf":
        return export_pdf(state, now)
    raise ValueError(f"Unsupported export format: {fmt}")


def write_export(
    state: ChecklistStateStore,
    fmt: str,
    output_dir: Path,
    now: datetime | None = None,
) -> Path:
    now = now or datetime.now(UTC)
    payload = render_export(state, fmt, now)
    path = output_dir / export_filename(fmt, now)
    write_atomic(path, payload, prefix=".readiness-export-")
    logger.info("exported %s progress to %s", fmt, path)
    return path


def _build_content_stream(lines: list[str]) -> bytes:
    stream = io.StringIO()
    stream.write("BT /F1 12 Tf 16 TL 72 720 Td\n")
    for line in lines:
        stream.write(f"({_escape_text(line)}) Tj\nT*\n")
    stream.write("ET")
    return stream.getvalue().encode("latin-1", errors="replace")


def _escape_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _wrap_pdf(stream_bytes: bytes) -> bytes:
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>"
        ),
        b"<< /Length %d >> stream\n" % len(stream_bytes) + stream_bytes + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    buffer = io.BytesIO()
    buffer.write(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(buffer.tell())
        buffer.write(b"%d 0 obj " % number + body + b" endobj\n")

    xref_start = buffer.tell()
    buffer.write(b"xref\n0 %d\n" % (len(offsets) + 1))
    buffer.write(b"0000000000 65535 f \n")
    for offset in offsets:
        buffer.write(b"%010d 00000 n \n" % offset)
    buffer.write(b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(offsets) + 1))
    buffer.write(b"startxref\n%d\n%%%%EOF\n" % xref_start)
    return buffer.getvalue()
