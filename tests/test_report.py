from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from readiness.report import DomainRun, ReportError, generate_report
from readiness.results import ValidationResults


def _run(domain: str) -> DomainRun:
    results = ValidationResults()
    results.pass_("ok")
    results.fail("Command failed: token=abcdef0123456789abcd")
    return DomainRun(domain=domain, title=domain.title(), results=results)


def test_report_written_with_totals(tmp_path: Path) -> None:
    output = tmp_path / "out" / "readiness-report.json"
    report = generate_report([_run("backend"), _run("cloud")], output, tmp_path)

    assert output.exists()
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data == report
    assert data["summary"] == {"passed": 2, "failed": 2, "warnings": 0, "notChecked": 0}
    assert list(data["domains"]) == ["backend", "cloud"]
    assert data["domains"]["backend"]["counts"]["failed"] == 1


def test_report_redacts_messages(tmp_path: Path) -> None:
    output = tmp_path / "report.json"
    generate_report([_run("backend")], output, tmp_path)
    text = output.read_text(encoding="utf-8")
    assert "abcdef0123456789abcd" not in text
    assert "[REDACTED]" in text


def test_report_write_failure(tmp_path: Path) -> None:
    with patch("readiness.report.write_atomic", side_effect=OSError("disk full")):
        with pytest.raises(ReportError, match="disk full"):
            generate_report([_run("backend")], tmp_path / "r.json", tmp_path)


def test_report_leaves_no_temp_files(tmp_path: Path) -> None:
    generate_report([_run("backend")], tmp_path / "r.json", tmp_path)
    assert [p.name for p in tmp_path.iterdir()] == ["r.json"]
