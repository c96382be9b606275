from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from ..results import Bucket, ValidationResults
from ..rules import (
    AnyFileExists,
    DocumentKeys,
    FilesFound,
    FunctionCheck,
    KeyExpect,
    SecretScan,
    Section,
    SourceContains,
    keys_expect,
    load_document,
)
from .base import ValidationContext, Validator

MODEL_CARD_SECTIONS = ("Intended Use", "Limitations")


class AIMLValidator(Validator):
    name = "aiml"
    title = "AI/ML Development"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking Data Pipeline...",
                "Data pipeline validation",
                (
                    FunctionCheck(check_dvc),
                    DocumentKeys(
                        "data/registry.yaml",
                        (
                            KeyExpect(
                                "datasets",
                                "Data registry lists datasets",
                                "Data registry lists no datasets",
                            ),
                        ),
                        absent="No data registry found",
                        label="Data versioning",
                    ),
                    AnyFileExists(
                        ("great_expectations", "data/validation", "data/schemas"),
                        "Data validation configured: {path}",
                        "No data validation configuration found",
                    ),
                    AnyFileExists(
                        ("feature_store.yaml", "feature_repo/feature_store.yaml", "features"),
                        "Feature store configured: {path}",
                        "No feature store configuration found",
                    ),
                ),
            ),
            Section(
                "Checking Model Development...",
                "Model development validation",
                (
                    DocumentKeys(
                        "mlflow.yaml",
                        keys_expect(
                            ("tracking_uri", "experiment_name"),
                            "MLflow {key} configured",
                            "MLflow {key} not configured",
                        ),
                        absent="No MLflow configuration found",
                        label="Experiment tracking",
                        error_bucket=Bucket.WARNING,
                    ),
                    FilesFound(
                        "notebooks",
                        (".ipynb",),
                        "Experiment notebooks found: {count}",
                        "No experiment notebooks found",
                        inspect=inspect_notebooks,
                    ),
                    AnyFileExists(
                        ("models/registry.yaml", "models/registry.json", "model_registry.yaml"),
                        "Model registry found: {path}",
                        "No model registry found",
                    ),
                    SourceContains(
                        ("tests",),
                        (".py",),
                        ("predict", "model"),
                        "Model tests found",
                        "No model tests found",
                    ),
                ),
            ),
            Section(
                "Checking Model Deployment...",
                "Model deployment validation",
                (
                    DocumentKeys(
                        "serving/config.yaml",
                        keys_expect(
                            ("model", "resources", "scaling"),
                            "Serving {key} configured",
                            "Serving {key} not configured",
                        ),
                        absent="No model serving configuration found",
                        label="Model serving",
                        error_bucket=Bucket.WARNING,
                    ),
                    FilesFound(
                        "serving/api",
                        (".py",),
                        "Model serving API implementation found: {count} files",
                        "No model serving API implementation found",
                        inspect=inspect_serving_api,
                    ),
                    AnyFileExists(
                        (
                            ".github/workflows/model-deploy.yml",
                            ".github/workflows/deploy.yml",
                            "deploy/pipeline.yaml",
                        ),
                        "Model deployment pipeline found: {path}",
                        "No model deployment pipeline found",
                    ),
                    AnyFileExists(
                        ("monitoring", "serving/monitoring.yaml"),
                        "Model monitoring setup found: {path}",
                        "No model monitoring setup found",
                    ),
                ),
            ),
            Section(
                "Checking Model Monitoring...",
                "Model monitoring validation",
                (
                    DocumentKeys(
                        "monitoring/config.yaml",
                        keys_expect(
                            ("metrics", "alerts"),
                            "Monitoring {key} configured",
                            "Monitoring {key} not configured",
                        ),
                        absent="No monitoring configuration found",
                        label="Performance monitoring",
                        error_bucket=Bucket.WARNING,
                    ),
                    FilesFound(
                        "monitoring/metrics",
                        (".py",),
                        "Metrics collection implementation found: {count} files",
                        "No metrics collection implementation found",
                    ),
                    SourceContains(
                        ("monitoring", "src"),
                        (".py",),
                        ("drift", "evidently", "alibi_detect"),
                        "Drift detection implemented",
                        "No drift detection found",
                    ),
                    AnyFileExists(
                        ("monitoring/alerts.yaml", "monitoring/alertmanager.yml", "alerts"),
                        "Alerting configured: {path}",
                        "No alerting configuration found",
                    ),
                ),
            ),
            Section(
                "Checking Model Governance...",
                "Model governance validation",
                (
                    FilesFound(
                        "models/cards",
                        (".md",),
                        "Model cards found: {count}",
                        "No model cards found",
                        inspect=inspect_model_cards,
                    ),
                    DocumentKeys(
                        "api/openapi.yaml",
                        (
                            KeyExpect(
                                "info.version",
                                "API version documented",
                                "API version not documented",
                            ),
                            KeyExpect("paths", "API paths documented", "No API paths documented"),
                        ),
                        absent="No API documentation found",
                        label="Model documentation",
                        error_bucket=Bucket.WARNING,
                    ),
                    AnyFileExists(
                        ("docs/fairness", "reports/fairness", "fairness"),
                        "Fairness assessment found: {path}",
                        "No fairness assessment found",
                    ),
                    AnyFileExists(
                        ("docs/compliance", "compliance"),
                        "Compliance documentation found: {path}",
                        "No compliance documentation found",
                    ),
                ),
            ),
            Section(
                "Scanning for secrets in model code and configuration...",
                "Secret scanning",
                (SecretScan(("src", "serving", "config"), (".py", ".yml", ".yaml", ".env")),),
            ),
        )


def check_dvc(ctx: ValidationContext, results: ValidationResults) -> None:
    if not ctx.exists(".dvc"):
        results.warn("No DVC configuration found")
        return
    config_file = ctx.path(".dvc/config")
    config = load_document(config_file, "ini") if config_file.is_file() else {}
    remotes = [
        section
        for name, section in config.items()
        if name.strip("'").startswith("remote") and section.get("url")
    ]
    if remotes:
        results.pass_("DVC remote storage configured")
    else:
        results.warn("DVC remote storage not configured")
    if config.get("cache", {}).get("dir"):
        results.pass_("DVC cache configured")
    else:
        results.warn("DVC cache not configured")


def inspect_notebooks(
    ctx: ValidationContext, results: ValidationResults, files: list[Path]
) -> None:
    for notebook in files:
        rel = notebook.relative_to(ctx.repo_path).as_posix()
        try:
            document = json.loads(notebook.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            results.warn(f"Unreadable notebook: {rel}")
            continue
        cells = document.get("cells", []) if isinstance(document, dict) else []
        if any(cell.get("outputs") for cell in cells if isinstance(cell, dict)):
            results.warn(f"Notebook has committed outputs: {rel}")


def inspect_serving_api(
    ctx: ValidationContext, results: ValidationResults, files: list[Path]
) -> None:
    for file in files:
        if "/health" in file.read_text(encoding="utf-8", errors="replace"):
            results.pass_("Serving API exposes a health endpoint")
            return
    results.warn("No health endpoint in serving API")


def inspect_model_cards(
    ctx: ValidationContext, results: ValidationResults, files: list[Path]
) -> None:
    for card in files:
        text = card.read_text(encoding="utf-8", errors="replace")
        missing = [s for s in MODEL_CARD_SECTIONS if s.lower() not in text.lower()]
        if missing:
            rel = card.relative_to(ctx.repo_path).as_posix()
            results.warn(f"Model card {rel} missing sections: {', '.join(missing)}")
