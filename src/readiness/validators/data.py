from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path

from ..results import ValidationResults
from ..rules import (
    MANUAL_PREFIX,
    AnyFileExists,
    DependencyAudit,
    DocumentKeys,
    FunctionCheck,
    SecretScan,
    Section,
    SourceContains,
    files_exist,
    keys_expect,
)
from ..secrets import walk_files
from .base import ValidationContext, Validator, governance_section

DATASET_DIR = "data"
DATASET_EXTENSIONS = (".csv", ".json", ".parquet")
MAX_DATASET_ROWS = 100_000


class DataValidator(Validator):
    name = "data"
    title = "Data Management"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking Data Governance Framework...",
                "Data governance validation",
                (
                    *files_exist(
                        (
                            "docs/governance/data-governance-framework.md",
                            "docs/governance/data-policies.md",
                            "docs/governance/data-procedures.md",
                        ),
                        "Governance document exists: {path}",
                        "Missing governance document: {path}",
                    ),
                    AnyFileExists(
                        ("docs/governance/data-stewardship.md", "config/data-owners.yml"),
                        "Data ownership defined: {path}",
                        "No data ownership definitions found",
                    ),
                    SecretScan(("config", "data"), (".json", ".yml", ".yaml", ".env")),
                    DependencyAudit(),
                ),
            ),
            Section(
                "Checking Data Quality Controls...",
                "Data quality validation",
                (
                    DocumentKeys(
                        "config/data-quality-rules.json",
                        keys_expect(
                            ("completeness", "accuracy", "consistency", "timeliness"),
                            "Quality rules defined for: {key}",
                            "Missing quality rules for: {key}",
                        ),
                        absent="Missing data quality rules configuration",
                        label="Data quality rules",
                        fmt="json",
                    ),
                    FunctionCheck(check_datasets),
                    AnyFileExists(
                        ("reports/profiling", "data/profiles"),
                        "Data profiling reports found: {path}",
                        "No data profiling reports found",
                    ),
                ),
            ),
            Section(
                "Checking Data Security Controls...",
                "Data security validation",
                (
                    DocumentKeys(
                        "config/access-controls.json",
                        keys_expect(
                            ("roles", "permissions", "restrictions"),
                            "Access control defined for: {key}",
                            "Missing access control for: {key}",
                        ),
                        absent="Missing access control configuration",
                        label="Access control",
                        fmt="json",
                    ),
                    DocumentKeys(
                        "config/encryption.json",
                        keys_expect(
                            ("at_rest", "in_transit"),
                            "Encryption configured: {key}",
                            "Missing encryption configuration: {key}",
                        ),
                        absent="Missing encryption configuration",
                        label="Encryption",
                        fmt="json",
                    ),
                    AnyFileExists(
                        ("config/audit-logging.json", "config/audit-logging.yml", "src/audit"),
                        "Audit logging configured: {path}",
                        "Missing audit logging configuration",
                    ),
                ),
            ),
            Section(
                "Checking Data Privacy Controls...",
                "Data privacy validation",
                (
                    *files_exist(
                        (
                            "docs/privacy/privacy-policy.md",
                            "docs/privacy/data-handling.md",
                            "docs/privacy/consent-management.md",
                        ),
                        "Privacy policy exists: {path}",
                        "Missing privacy policy: {path}",
                    ),
                    SourceContains(
                        ("src", "config"),
                        (".js", ".ts", ".py", ".json", ".yml", ".yaml"),
                        ("pii", "anonymi", "pseudonym", "mask"),
                        "PII handling controls found",
                        "No PII handling controls found",
                    ),
                    AnyFileExists(
                        ("src/privacy/consent.js", "config/consent.yml"),
                        "Consent management implementation found: {path}",
                        "No consent management implementation found",
                    ),
                ),
            ),
            Section(
                "Checking Data Lifecycle Management...",
                "Data lifecycle validation",
                (
                    DocumentKeys(
                        "config/retention-policies.json",
                        keys_expect(
                            ("retention", "archival", "disposal"),
                            "Retention policy defined for: {key}",
                            "Missing retention policy for: {key}",
                        ),
                        absent="Missing retention policies configuration",
                        label="Retention policy",
                        fmt="json",
                    ),
                    *files_exist(
                        (
                            "docs/data-lifecycle/archival-procedures.md",
                            "docs/data-lifecycle/disposal-procedures.md",
                        ),
                        "Lifecycle procedure exists: {path}",
                        "Missing lifecycle procedure: {path}",
                    ),
                ),
            ),
            Section(
                "Checking Data Security Enhancements...",
                "Data security enhancements validation",
                (
                    *files_exist(
                        (
                            "docs/privacy/privacy-impact-assessment.md",
                            "docs/compliance/pia-template.md",
                            "config/pia-config.yml",
                        ),
                        "Privacy impact assessment found: {path}",
                        "Missing privacy impact assessment: {path}",
                    ),
                    *files_exist(
                        (
                            "src/privacy/data-subject-rights.js",
                            "docs/privacy/gdpr-procedures.md",
                            "config/data-rights.yml",
                        ),
                        "Data subject rights implementation found: {path}",
                        "Missing data subject rights implementation: {path}",
                    ),
                    *files_exist(
                        (
                            "docs/compliance/cross-border-transfers.md",
                            "config/data-transfer-controls.yml",
                        ),
                        "Cross-border controls found: {path}",
                        "Missing cross-border controls: {path}",
                    ),
                    *files_exist(
                        (
                            "src/security/access-control.js",
                            "config/access-policies.yml",
                            "src/audit/access-logger.js",
                        ),
                        "Enhanced access controls found: {path}",
                        "Missing enhanced access controls: {path}",
                    ),
                ),
            ),
            governance_section(self.name),
        )


def check_datasets(ctx: ValidationContext, results: ValidationResults) -> None:
    """Profile CSV datasets under ``data/``; other formats need a human."""
    datasets = list(walk_files(ctx.path(DATASET_DIR), DATASET_EXTENSIONS))
    if not datasets:
        results.warn(f"No datasets found under {DATASET_DIR}/")
        return
    for dataset in datasets:
        rel = dataset.relative_to(ctx.repo_path).as_posix()
        if dataset.suffix == ".csv":
            try:
                _profile_csv(dataset, rel, results)
            except (OSError, csv.Error, UnicodeDecodeError) as exc:
                results.fail(f"Dataset validation failed for {rel}: {exc}")
                continue
        else:
            results.warn(f"{MANUAL_PREFIX}Check completeness for {rel}")
            results.warn(f"{MANUAL_PREFIX}Check consistency for {rel}")
        results.warn(f"{MANUAL_PREFIX}Check accuracy for {rel}")
        results.warn(f"{MANUAL_PREFIX}Check timeliness for {rel}")


def _profile_csv(path: Path, rel: str, results: ValidationResults) -> None:
    missing = 0
    ragged = 0
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            results.warn(f"Dataset {rel} is empty")
            return
        for index, row in enumerate(reader):
            if index >= MAX_DATASET_ROWS:
                break
            if len(row) != len(header):
                ragged += 1
            missing += sum(1 for cell in row if not cell.strip())

    if missing:
        results.warn(f"Dataset {rel} has {missing} missing values")
    else:
        results.pass_(f"Dataset {rel} is complete")
    if ragged:
        results.warn(f"Dataset {rel} has {ragged} rows with inconsistent column counts")
    else:
        results.pass_(f"Dataset {rel} has consistent columns")
