"""Frontend checks: performance, accessibility, build output and security.

Lighthouse and axe run through ``npx`` against ``frontend.target_url`` from
``readiness.toml``; without a target URL those audits are reported as not
checked.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from ..commands import CommandError
from ..results import Bucket, ValidationResults
from ..rules import (
    MANUAL_PREFIX,
    AnyFileExists,
    CommandSucceeds,
    DependencyAudit,
    Expect,
    FileContains,
    FunctionCheck,
    SecretScan,
    Section,
    SourceContains,
    files_exist,
    lookup,
)
from .base import ValidationContext, Validator, governance_section

logger = logging.getLogger(__name__)

PERFORMANCE_THRESHOLDS: dict[str, float] = {
    "first-contentful-paint": 1000,
    "largest-contentful-paint": 2500,
    "interactive": 3500,
    "cumulative-layout-shift": 0.1,
    "total-blocking-time": 300,
}
# Layout shift is a score, the other metrics are milliseconds
UNITLESS_METRICS = frozenset({"cumulative-layout-shift"})
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")
IMAGE_DIRS = ("src/assets", "public", "static")
MAX_IMAGE_KB = 200
XSS_SINKS = ("dangerouslySetInnerHTML", ".innerHTML =", "v-html", "document.write(", "eval(")
SCRIPT_EXTENSIONS = (".js", ".ts", ".jsx", ".tsx", ".vue")
CSP_CONFIGS = ("public/index.html", "src/security/csp.js", "config/security-headers.json")
STATS_PATH = "dist/stats.json"
COVERAGE_PATH = "coverage/coverage-summary.json"


class FrontendValidator(Validator):
    name = "frontend"
    title = "Frontend"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking Performance Metrics...",
                "Performance validation",
                (
                    FunctionCheck(check_lighthouse),
                    FunctionCheck(check_bundle_size),
                    FunctionCheck(check_images),
                    SecretScan(("src",), (".js", ".ts", ".env")),
                    DependencyAudit(),
                ),
            ),
            Section(
                "Checking Accessibility...",
                "Accessibility validation",
                (
                    FunctionCheck(check_axe),
                    FileContains(
                        "dist/index.html",
                        (
                            Expect(
                                ("<main", "<nav", "<header", "<footer"),
                                "Semantic HTML landmarks found",
                                "No semantic HTML landmarks found",
                            ),
                        ),
                        absent="Semantic HTML check failed: {path} not found",
                        label="Semantic HTML",
                    ),
                    SourceContains(
                        ("src", "public"),
                        (".html", *SCRIPT_EXTENSIONS),
                        ("aria-", "role="),
                        "ARIA attributes in use",
                        "No ARIA attributes found",
                    ),
                ),
            ),
            Section(
                "Checking Best Practices...",
                "Best practices validation",
                (
                    CommandSucceeds(
                        ("npm", "run", "lint"),
                        "Code style validation passed",
                        "Code style validation failed",
                    ),
                    AnyFileExists(
                        ("README.md", "docs"),
                        "Documentation found: {path}",
                        "No documentation found",
                    ),
                    FunctionCheck(check_test_coverage),
                ),
            ),
            Section(
                "Checking Security Controls...",
                "Security validation",
                (
                    CommandSucceeds(
                        ("npm", "audit"),
                        "Dependency security check passed",
                        "Dependency security check failed",
                    ),
                    FileContains(
                        "dist/index.html",
                        (
                            Expect(
                                ("content-security-policy", "Content-Security-Policy"),
                                "CSP header found",
                                "No CSP header found",
                            ),
                        ),
                        absent="CSP check failed: {path} not found",
                        label="CSP",
                    ),
                    FunctionCheck(check_xss_sinks),
                ),
            ),
            Section(
                "Checking Build Output...",
                "Build output validation",
                (
                    *files_exist(
                        ("dist/index.html", "dist/main.js", "dist/styles.css"),
                        "Build artifact exists: {path}",
                        "Missing build artifact: {path}",
                        missing_bucket=Bucket.FAILED,
                    ),
                    FunctionCheck(check_source_maps),
                ),
            ),
            Section(
                "Checking Frontend Security Controls...",
                "Frontend security validation",
                (
                    FunctionCheck(check_csp_config),
                    *files_exist(
                        (
                            "src/utils/validation.js",
                            "src/security/sanitizer.js",
                            "src/utils/encoder.js",
                        ),
                        "Input validation found: {path}",
                        "Missing input validation: {path}",
                    ),
                    *files_exist(
                        (".github/workflows/security.yml", "package.json", ".snyk"),
                        "Security scanning config found: {path}",
                        "Missing security scanning config: {path}",
                    ),
                    FunctionCheck(check_clickjacking),
                ),
            ),
            governance_section(self.name),
        )


def _npx_json(ctx: ValidationContext, *args: str) -> Any:
    result = ctx.run("npx", "--yes", *args)
    if result.timed_out or not result.stdout.strip():
        raise CommandError(f"{args[0]} produced no output")
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise CommandError(f"{args[0]} produced invalid JSON: {exc}") from exc


def check_lighthouse(ctx: ValidationContext, results: ValidationResults) -> None:
    url = ctx.frontend.target_url
    if not url:
        results.skip("Lighthouse audit not run: frontend.target_url not configured")
        return
    try:
        report = _npx_json(
            ctx,
            "lighthouse",
            url,
            "--output=json",
            "--quiet",
            "--only-categories=performance",
            "--chrome-flags=--headless",
        )
    except CommandError as exc:
        results.fail(f"Lighthouse audit failed: {exc}")
        return
    for metric, threshold in PERFORMANCE_THRESHOLDS.items():
        value = lookup(report, f"audits.{metric}.numericValue")
        unit = "" if metric in UNITLESS_METRICS else "ms"
        if not isinstance(value, (int, float)):
            results.skip(f"{metric} not reported by Lighthouse")
        elif value <= threshold:
            results.pass_(f"{metric} within threshold: {value:g}{unit}")
        else:
            results.fail(f"{metric} exceeds threshold: {value:g}{unit}")


def check_bundle_size(ctx: ValidationContext, results: ValidationResults) -> None:
    stats_file = ctx.path(STATS_PATH)
    if not stats_file.is_file():
        results.warn(f"Bundle size check failed: {STATS_PATH} not found")
        return
    try:
        stats = json.loads(stats_file.read_text(encoding="utf-8"))
        assets = stats["assets"]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        results.warn(f"Bundle size check failed: {exc}")
        return
    limit = ctx.frontend.max_bundle_kb * 1024
    for asset in assets:
        name, size = asset.get("name"), asset.get("size", 0)
        if size > limit:
            results.warn(f"Bundle {name} exceeds size threshold: {size} bytes")
        else:
            results.pass_(f"Bundle {name} within size threshold: {size} bytes")


def check_images(ctx: ValidationContext, results: ValidationResults) -> None:
    images = ctx.files(IMAGE_DIRS, IMAGE_EXTENSIONS)
    if not images:
        results.skip("Image optimization not checked: no images found")
        return
    oversized = [p for p in images if p.stat().st_size > MAX_IMAGE_KB * 1024]
    for image in oversized:
        results.warn(
            f"Image {image.relative_to(ctx.repo_path).as_posix()} exceeds {MAX_IMAGE_KB} KB"
        )
    if not oversized:
        results.pass_(f"Images optimized: {len(images)} files under {MAX_IMAGE_KB} KB")


def check_axe(ctx: ValidationContext, results: ValidationResults) -> None:
    url = ctx.frontend.target_url
    if not url:
        results.skip("Axe audit not run: frontend.target_url not configured")
        return
    try:
        report = _npx_json(ctx, "@axe-core/cli", url, "--stdout")
    except CommandError as exc:
        results.fail(f"Axe audit failed: {exc}")
        return
    pages = report if isinstance(report, list) else [report]
    violations = [v for page in pages for v in page.get("violations", [])]
    if not violations:
        results.pass_("No accessibility violations found")
    for violation in violations:
        results.fail(
            f"Accessibility violation: {violation.get('help')} - {violation.get('description')}"
        )


def check_test_coverage(ctx: ValidationContext, results: ValidationResults) -> None:
    summary = ctx.path(COVERAGE_PATH)
    if not summary.is_file():
        results.warn(f"Test coverage check failed: {COVERAGE_PATH} not found")
        return
    try:
        pct = float(json.loads(summary.read_text(encoding="utf-8"))["total"]["lines"]["pct"])
    except (OSError, ValueError, KeyError, TypeError) as exc:
        results.warn(f"Test coverage check failed: {exc}")
        return
    if pct >= ctx.frontend.coverage_threshold:
        results.pass_(f"Test coverage above threshold: {pct:g}%")
    else:
        results.fail(f"Test coverage below threshold: {pct:g}%")


def check_xss_sinks(ctx: ValidationContext, results: ValidationResults) -> None:
    sources = ctx.files(("src",), SCRIPT_EXTENSIONS)
    if not sources:
        results.skip("XSS protection not checked: no source files in src/")
        return
    flagged = False
    for source in sources:
        text = ctx.read_text(source)
        if any(sink in text for sink in XSS_SINKS):
            flagged = True
            results.warn(
                f"Unsafe DOM sink found in {source.relative_to(ctx.repo_path).as_posix()}"
            )
    if not flagged:
        results.pass_("No unsafe DOM sinks found")


def check_source_maps(ctx: ValidationContext, results: ValidationResults) -> None:
    if not ctx.exists("dist"):
        results.skip("Source maps not checked: no dist/ directory")
        return
    maps = ctx.files(("dist",), (".map",))
    if maps:
        results.warn(f"Source maps shipped in build output: {len(maps)} files")
    else:
        results.pass_("No source maps in build output")


def check_csp_config(ctx: ValidationContext, results: ValidationResults) -> None:
    found = False
    for config in CSP_CONFIGS:
        path = ctx.path(config)
        if not path.is_file():
            continue
        content = path.read_text(encoding="utf-8", errors="replace")
        if "Content-Security-Policy" in content or "csp" in content:
            found = True
            results.pass_(f"CSP configuration found in: {config}")
    if not found:
        results.warn("No CSP configuration found")


def check_clickjacking(ctx: ValidationContext, results: ValidationResults) -> None:
    for file in ctx.files(("src", "config", "public"), (".html", ".json", *SCRIPT_EXTENSIONS)):
        text = ctx.read_text(file)
        if "X-Frame-Options" in text or "frame-ancestors" in text:
            results.pass_("Clickjacking protection configured")
            return
    results.warn(MANUAL_PREFIX + "Check X-Frame-Options headers")
