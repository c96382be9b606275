from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

from readiness.results import Bucket, ValidationResults
from readiness.rules import (
    MANUAL_PREFIX,
    AnyFileExists,
    CommandSucceeds,
    DependencyAudit,
    DocumentKeys,
    Expect,
    FileContains,
    FileExists,
    FilesFound,
    ManualCheck,
    SecretScan,
    SourceContains,
    keys_expect,
    lookup,
)
from readiness.validators import ValidationContext

from conftest import FakeRunner, make_result


def _evaluate(check: object, ctx: ValidationContext) -> ValidationResults:
    results = ValidationResults()
    check.evaluate(ctx, results)  # type: ignore[attr-defined]
    return results


def test_file_exists_missing_goes_to_designated_bucket(offline_ctx: ValidationContext) -> None:
    check = FileExists("docs/a.md", "Found {path}", "Missing {path}", Bucket.FAILED)
    results = _evaluate(check, offline_ctx)
    assert results.failed == ["Missing docs/a.md"]
    assert results.passed == []


def test_file_exists_present(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("docs/a.md", "# doc")
    results = _evaluate(FileExists("docs/a.md", "Found {path}", "Missing {path}"), offline_ctx)
    assert results.passed == ["Found docs/a.md"]


def test_any_file_exists_single_warning(offline_ctx: ValidationContext) -> None:
    check = AnyFileExists(("a", "b"), "Found {path}", "Nothing found")
    assert _evaluate(check, offline_ctx).warnings == ["Nothing found"]


def test_file_contains_expectations(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("dist/index.html", '<meta http-equiv="Content-Security-Policy">')
    check = FileContains(
        "dist/index.html",
        (
            Expect(("Content-Security-Policy",), "CSP found", "CSP missing"),
            Expect((r"nonce-\w+",), "Nonce found", "Nonce missing", regex=True),
        ),
        absent="No {path}",
    )
    results = _evaluate(check, offline_ctx)
    assert results.passed == ["CSP found"]
    assert results.warnings == ["Nonce missing"]


def test_file_contains_absent(offline_ctx: ValidationContext) -> None:
    check = FileContains("dist/index.html", (), absent="No {path}", absent_bucket=Bucket.FAILED)
    assert _evaluate(check, offline_ctx).failed == ["No dist/index.html"]


def test_source_contains(offline_ctx: ValidationContext, write_file: Callable[..., Path]) -> None:
    check = SourceContains(("src",), (".ts",), ("@UseGuards",), "Guards found", "No guards")
    assert _evaluate(check, offline_ctx).warnings == ["No guards"]
    write_file("src/app.controller.ts", "@UseGuards(AuthGuard)\nexport class X {}")
    assert _evaluate(check, offline_ctx).passed == ["Guards found"]


def test_source_contains_skips_files_over_size_cap(
    tmp_path: Path, write_file: Callable[..., Path]
) -> None:
    ctx = ValidationContext(repo_path=tmp_path, max_scan_file_kb=1, runner=FakeRunner())
    check = SourceContains(("src",), (".ts",), ("@UseGuards",), "Guards found", "No guards")
    write_file("src/bundle.ts", "@UseGuards(AuthGuard)\n" + "x" * 2048)
    assert _evaluate(check, ctx).warnings == ["No guards"]


def test_files_found_counts_and_inspects(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    seen: list[int] = []
    check = FilesFound(
        "notebooks",
        (".ipynb",),
        "Found {count} notebooks in {directory}",
        "No notebooks",
        inspect=lambda ctx, results, files: seen.append(len(files)),
    )
    write_file("notebooks/a.ipynb", "{}")
    write_file("notebooks/b.ipynb", "{}")
    results = _evaluate(check, offline_ctx)
    assert results.passed == ["Found 2 notebooks in notebooks"]
    assert seen == [2]


def test_document_keys_yaml(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("serving/config.yaml", "model: m\nresources:\n  cpu: 2\n")
    check = DocumentKeys(
        "serving/config.yaml",
        keys_expect(("model", "resources", "scaling"), "Has {key}", "Lacks {key}"),
        absent="No serving config",
        label="Serving config",
    )
    results = _evaluate(check, offline_ctx)
    assert results.passed == ["Has model", "Has resources"]
    assert results.warnings == ["Lacks scaling"]


def test_document_keys_parse_error(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("config/rules.json", "{not json")
    check = DocumentKeys(
        "config/rules.json",
        keys_expect(("a",), "Has {key}", "Lacks {key}"),
        absent=None,
        label="Rules",
        fmt="json",
    )
    results = _evaluate(check, offline_ctx)
    assert len(results.failed) == 1
    assert results.failed[0].startswith("Rules check failed: ")


def test_document_keys_absent_without_message(offline_ctx: ValidationContext) -> None:
    check = DocumentKeys("x.yaml", (), absent=None, label="X")
    assert _evaluate(check, offline_ctx).counts() == {
        "passed": 0,
        "failed": 0,
        "warnings": 0,
        "notChecked": 0,
    }


def test_manual_check_prefix(offline_ctx: ValidationContext) -> None:
    results = _evaluate(ManualCheck("Review VLAN configuration"), offline_ctx)
    assert results.warnings == [MANUAL_PREFIX + "Review VLAN configuration"]


def test_secret_scan_one_entry_per_file(
    offline_ctx: ValidationContext, write_file: Callable[..., Path]
) -> None:
    write_file("src/settings.py", 'password = "abcdef123456"\nsecret = "abcdefghij"\n')
    results = _evaluate(SecretScan(("src",), (".py",)), offline_ctx)
    assert results.failed == ["Potential secret found in src/settings.py"]


def test_dependency_audit_missing_npm(offline_ctx: ValidationContext) -> None:
    results = _evaluate(DependencyAudit(), offline_ctx)
    assert results.warnings == ["Dependency audit failed: npm not found on PATH"]


def test_dependency_audit_reads_json_on_nonzero_exit(tmp_path: Path) -> None:
    audit = '{"metadata": {"vulnerabilities": {"total": 3}}}'
    runner = FakeRunner(
        {("npm", "audit"): make_result(("npm", "audit", "--json"), audit, exit_code=1)}
    )
    ctx = ValidationContext(repo_path=tmp_path, runner=runner)
    assert _evaluate(DependencyAudit(), ctx).failed == ["Vulnerable dependencies found: 3"]


def test_dependency_audit_npm_error_is_not_a_pass(tmp_path: Path) -> None:
    audit = json.dumps(
        {"error": {"code": "ENOLOCK", "summary": "This command requires an existing lockfile."}}
    )
    runner = FakeRunner(
        {("npm", "audit"): make_result(("npm", "audit", "--json"), audit, exit_code=1)}
    )
    results = _evaluate(DependencyAudit(), ValidationContext(repo_path=tmp_path, runner=runner))

    assert results.passed == []
    assert results.warnings == [
        "Dependency audit failed: This command requires an existing lockfile."
    ]


def test_dependency_audit_without_totals(tmp_path: Path) -> None:
    runner = FakeRunner({("npm", "audit"): {"auditReportVersion": 2}})
    results = _evaluate(DependencyAudit(), ValidationContext(repo_path=tmp_path, runner=runner))

    assert results.passed == []
    assert results.warnings[0].startswith("Dependency audit failed: Command failed: npm audit")


def test_dependency_audit_clean(tmp_path: Path) -> None:
    runner = FakeRunner({("npm", "audit"): {"metadata": {"vulnerabilities": {"total": 0}}}})
    ctx = ValidationContext(repo_path=tmp_path, runner=runner)
    assert _evaluate(DependencyAudit(), ctx).passed == ["No vulnerable dependencies detected"]


def test_command_succeeds(tmp_path: Path) -> None:
    check = CommandSucceeds(("npm", "run", "lint"), "Lint passed", "Lint failed")
    ok = ValidationContext(repo_path=tmp_path, runner=FakeRunner({("npm", "run"): ""}))
    assert _evaluate(check, ok).passed == ["Lint passed"]

    failing = FakeRunner({("npm", "run"): make_result(("npm", "run", "lint"), "", 1)})
    results = _evaluate(check, ValidationContext(repo_path=tmp_path, runner=failing))
    assert results.failed[0].startswith("Lint failed: Command failed: npm run lint")


def test_lookup_dotted_keys() -> None:
    document = {"info": {"version": "1.0"}, "list": [1]}
    assert lookup(document, "info.version") == "1.0"
    assert lookup(document, "info.title") is None
    assert lookup(document, "list.0") is None
