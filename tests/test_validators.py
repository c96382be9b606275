from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from readiness.config import FrontendSettings
from readiness.results import ValidationResults
from readiness.rules import MANUAL_PREFIX, Section
from readiness.validators import (
    VALIDATOR_REGISTRY,
    ValidationContext,
    Validator,
    create_validator,
)

from conftest import FakeRunner

EXPECTED_ON_EMPTY_REPO = {
    "aiml": ("warnings", "No DVC configuration found"),
    "backend": ("warnings", "No OpenAPI/Swagger documentation found"),
    "cloud": ("notChecked", "AWS resource checks skipped: CLI not configured"),
    "data": ("warnings", "Missing data quality rules configuration"),
    "devops": ("warnings", "No infrastructure-as-code configuration found"),
    "frontend": ("notChecked", "Lighthouse audit not run: frontend.target_url not configured"),
    "mobile": ("failed", "Xcode settings check failed: no Xcode project found under ios/"),
    "security": ("failed", "Default deny policies not properly configured"),
}


@pytest.mark.parametrize("name", sorted(VALIDATOR_REGISTRY))
def test_empty_repo_yields_designated_entries(
    name: str, offline_ctx: ValidationContext
) -> None:
    results = create_validator(name).run(offline_ctx)
    bucket, message = EXPECTED_ON_EMPTY_REPO[name]
    assert message in results.to_dict()[bucket]


@pytest.mark.parametrize("name", sorted(set(VALIDATOR_REGISTRY) - {"security"}))
def test_empty_repo_has_no_passed_entries(name: str, offline_ctx: ValidationContext) -> None:
    results = create_validator(name).run(offline_ctx)
    assert results.passed == []


def test_run_reports_section_headings(offline_ctx: ValidationContext) -> None:
    headings: list[str] = []
    create_validator("devops").run(offline_ctx, progress=headings.append)
    assert headings[0] == "Checking CI/CD Configuration..."
    assert len(headings) == 4


def test_create_validator_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown validator: quantum"):
        create_validator("quantum")


def test_section_error_becomes_single_failed_entry(offline_ctx: ValidationContext) -> None:
    class Broken:
        def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
            raise RuntimeError("password=hunter2hunter2 leaked")

    class Never:
        def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
            results.pass_("should not run")

    class Other:
        def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
            results.pass_("next section ran")

    class Demo(Validator):
        name = "demo"
        title = "Demo"

        def sections(self) -> tuple[Section, ...]:
            return (
                Section("Checking A...", "A validation", (Broken(), Never())),
                Section("Checking B...", "B validation", (Other(),)),
            )

    results = Demo().run(offline_ctx)
    assert results.failed == ["A validation failed: password=[REDACTED] leaked"]
    assert results.passed == ["next section ran"]


def test_security_manual_checks(offline_ctx: ValidationContext) -> None:
    results = create_validator("security").run(offline_ctx)
    manual = [w for w in results.warnings if w.startswith(MANUAL_PREFIX)]
    assert MANUAL_PREFIX + "Check MFA settings in okta" in manual
    assert MANUAL_PREFIX + "Verify network isolation" in manual
    assert len(manual) == 7


def test_security_default_deny_and_secrets(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("config/firewall.yml", "default: deny\n")
    write_file("src/config.py", 'password = "abcdef123456"\n')
    results = create_validator("security").run(offline_ctx)
    assert "Default deny policies are in place" in results.passed
    assert "Potential secret found in src/config.py" in results.failed


def test_backend_openapi_document(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(
        "src/swagger.yaml",
        "openapi: 3.0.0\n"
        "info:\n  version: 1.2.0\n"
        "components:\n  securitySchemes:\n    bearer:\n      type: http\n"
        "paths:\n  /users:\n    get:\n      responses:\n        '200':\n"
        "          description: ok\n",
    )
    results = create_validator("backend").run(offline_ctx)
    assert "API versioning implemented" in results.passed
    assert "Security schemes defined" in results.passed
    assert "Response schemas defined" in results.passed


def test_backend_invalid_openapi_is_failed(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("src/swagger.yaml", "info: [unclosed\n")
    results = create_validator("backend").run(offline_ctx)
    assert any(f.startswith("API documentation check failed:") for f in results.failed)


def test_governance_docs(offline_ctx: ValidationContext, write_file: Callable[..., Path]) -> None:
    write_file("docs/governance/security-policy.md", "# Policy")
    write_file("docs/training/backend-training.md", "# Training")
    results = create_validator("backend").run(offline_ctx)
    assert "Governance doc exists: docs/governance/security-policy.md" in results.passed
    assert "Training record exists: docs/training/backend-training.md" in results.passed
    assert "Missing governance doc: docs/governance/code-of-conduct.md" in results.warnings


def test_aiml_dvc_and_notebooks(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(
        ".dvc/config",
        "[core]\nremote = storage\n"
        "['remote \"storage\"']\nurl = s3://bucket/dvc\n"
        "[cache]\ndir = /var/cache/dvc\n",
    )
    notebook = {"cells": [{"cell_type": "code", "outputs": [{"text": "42"}]}]}
    write_file("notebooks/explore.ipynb", json.dumps(notebook))
    results = create_validator("aiml").run(offline_ctx)
    assert "DVC remote storage configured" in results.passed
    assert "DVC cache configured" in results.passed
    assert "Notebook has committed outputs: notebooks/explore.ipynb" in results.warnings


def test_data_quality_rules_and_dataset_profile(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    rules = {"completeness": {"min": 0.99}, "accuracy": {"checks": ["range"]}}
    write_file("config/data-quality-rules.json", json.dumps(rules))
    write_file("data/customers.csv", "id,name\n1,Ada\n2,\n3,Bob,extra\n")
    results = create_validator("data").run(offline_ctx)
    assert "Quality rules defined for: completeness" in results.passed
    assert "Missing quality rules for: timeliness" in results.warnings
    assert "Dataset data/customers.csv has 1 missing values" in results.warnings
    assert (
        "Dataset data/customers.csv has 1 rows with inconsistent column counts"
        in results.warnings
    )


def test_devops_github_workflow(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(
        ".github/workflows/ci.yml",
        "on: push\njobs:\n  build:\n    runs-on: ubuntu-latest\n"
        "  test:\n    runs-on: ubuntu-latest\n",
    )
    write_file("k8s/deployments/app.yaml", "kind: Deployment\n")
    write_file("monitoring/prometheus/prometheus.yml", "scrape_configs: []\n")
    results = create_validator("devops").run(offline_ctx)
    assert "Pipeline includes build stage" in results.passed
    assert "Pipeline includes test stage" in results.passed
    assert "Kubernetes deployments configured" in results.passed
    assert "Missing services in Kubernetes config" in results.warnings
    assert "prometheus monitoring configured" in results.passed
    assert "Prometheus prometheus.yml configured" in results.passed
    assert "No CI/CD configuration found" not in results.warnings


def test_devops_broken_pipeline_yaml(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(".gitlab-ci.yml", "stages: [build\n")
    results = create_validator("devops").run(offline_ctx)
    assert any(
        f.startswith("Pipeline config validation failed for .gitlab-ci.yml:")
        for f in results.failed
    )


def test_devops_broken_workflow_does_not_hide_others(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(".github/workflows/a-broken.yml", "jobs: [build\n")
    write_file(
        ".github/workflows/ci.yml",
        "on: push\njobs:\n  build:\n    runs-on: ubuntu-latest\n",
    )
    results = create_validator("devops").run(offline_ctx)
    assert any(
        f.startswith("Pipeline config validation failed for .github/workflows/a-broken.yml:")
        for f in results.failed
    )
    assert "Pipeline includes build stage" in results.passed


def test_mobile_project_settings(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file(
        "ios/Shop.xcodeproj/project.pbxproj",
        "IPHONEOS_DEPLOYMENT_TARGET = 14.0;\nDEVELOPMENT_TEAM = ABC123;\n",
    )
    write_file("android/app/build.gradle", "android {\n  defaultConfig {\n    minSdkVersion 23\n")
    write_file(
        "android/app/src/main/AndroidManifest.xml",
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android">'
        '<uses-permission android:name="android.permission.INTERNET"/></manifest>',
    )
    results = create_validator("mobile").run(offline_ctx)
    assert "iOS deployment target is set correctly" in results.passed
    assert "iOS code signing configured" in results.passed
    assert "Android minimum SDK version is set correctly" in results.passed
    assert "Android permission found: android.permission.INTERNET" in results.passed
    assert "Missing Android permission: android.permission.ACCESS_NETWORK_STATE" in (
        results.warnings
    )


def test_mobile_old_deployment_target(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("ios/Shop.xcodeproj/project.pbxproj", "IPHONEOS_DEPLOYMENT_TARGET = 11.4;\n")
    results = create_validator("mobile").run(offline_ctx)
    assert "iOS deployment target may need updating" in results.warnings


def test_frontend_bundle_size_and_csp(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    stats = {"assets": [{"name": "main.js", "size": 1000}, {"name": "vendor.js", "size": 900_000}]}
    write_file("dist/stats.json", json.dumps(stats))
    write_file(
        "dist/index.html",
        '<html><head><meta http-equiv="Content-Security-Policy" content="default-src \'self\'">'
        "</head><body><main></main></body></html>",
    )
    results = create_validator("frontend").run(offline_ctx)
    assert "Bundle main.js within size threshold: 1000 bytes" in results.passed
    assert "Bundle vendor.js exceeds size threshold: 900000 bytes" in results.warnings
    assert "CSP header found" in results.passed
    assert "Semantic HTML landmarks found" in results.passed


def test_frontend_xss_scan_skips_oversized_sources(
    tmp_path: Path, write_file: Callable[..., Path]
) -> None:
    write_file("src/vendor.js", "el.innerHTML = html;\n" + "//" * 1024)
    ctx = ValidationContext(repo_path=tmp_path, max_scan_file_kb=1, runner=FakeRunner())
    results = create_validator("frontend").run(ctx)
    assert "No unsafe DOM sinks found" in results.passed


def test_frontend_lighthouse_thresholds(tmp_path: Path) -> None:
    report = {
        "audits": {
            "first-contentful-paint": {"numericValue": 800},
            "largest-contentful-paint": {"numericValue": 4000},
            "cumulative-layout-shift": {"numericValue": 0.25},
        }
    }
    runner = FakeRunner({("npx", "--yes", "lighthouse"): report})
    ctx = ValidationContext(
        repo_path=tmp_path,
        runner=runner,
        frontend=FrontendSettings(target_url="http://localhost:3000"),
    )
    results = create_validator("frontend").run(ctx)
    assert "first-contentful-paint within threshold: 800ms" in results.passed
    assert "largest-contentful-paint exceeds threshold: 4000ms" in results.failed
    assert "cumulative-layout-shift exceeds threshold: 0.25" in results.failed
    assert any(call[:3] == ("npx", "--yes", "lighthouse") for call in runner.calls)
