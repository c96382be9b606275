"""JSON report of a readiness validation run.

Collects the result buckets of every validator that ran into one document,
redacts secret-looking text and writes it atomically.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from readiness_core import redact, write_atomic

if TYPE_CHECKING:
    from .results import ValidationResults

__all__ = [
    "DomainRun",
    "generate_report",
    "ReportError",
]

REPORT_VERSION = "1.0.0"
MAX_MESSAGES_PER_BUCKET = 5_000
MAX_JSON_SIZE_MB = 20


class ReportError(Exception):
    """Error during report generation."""


@dataclass(frozen=True)
class DomainRun:
    domain: str
    title: str
    results: ValidationResults


def generate_report(
    runs: list[DomainRun],
    output_path: Path,
    repo_path: Path,
) -> dict[str, Any]:
    """Write ``readiness-report.json`` for the given runs.

    Args:
        runs: Validator runs in execution order.
        output_path: Destination file.
        repo_path: Repository that was validated.

    Returns:
        Report data dictionary.

    Raises:
        ReportError: If the report cannot be written.
    """
    domains: dict[str, dict[str, Any]] = {}
    totals = {"passed": 0, "failed": 0, "warnings": 0, "notChecked": 0}

    for run in runs:
        buckets = {
            bucket: [redact(m) for m in messages[:MAX_MESSAGES_PER_BUCKET]]
            for bucket, messages in run.results.to_dict().items()
        }
        counts = run.results.counts()
        for bucket, count in counts.items():
            totals[bucket] += count
        domains[run.domain] = {"title": run.title, "counts": counts, **buckets}

    report: dict[str, Any] = {
        "version": REPORT_VERSION,
        "generated_at": datetime.now(UTC).isoformat(),
        "repo": repo_path.name or str(repo_path),
        "summary": totals,
        "domains": domains,
    }

    try:
        payload = json.dumps(report, indent=2, ensure_ascii=False).encode("utf-8")
        size_mb = len(payload) / (1024 * 1024)
        if size_mb > MAX_JSON_SIZE_MB:
            raise ValueError(f"Report too large: {size_mb:.1f}MB > {MAX_JSON_SIZE_MB}MB")
        write_atomic(output_path, payload, prefix=".readiness-report-")
    except (OSError, ValueError) as exc:
        raise ReportError(f"Failed to write report: {exc}") from exc

    return report
