from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from readiness_core import JsonFileStore, redact
from readiness_dashboard import (
    CHECKLIST_NAMES,
    ChecklistStateStore,
    progress_color,
    run_dashboard,
    write_export,
)
from readiness_dashboard.export import EXPORT_FORMATS

from .config import ConfigError, ConfigOverrides, ReadinessConfig, default_config_text, load_config
from .output import (
    ProgressRow,
    SummaryRow,
    render_progress,
    render_results,
    render_summary,
    sanitize_error,
    splash,
)
from .paths import app_base_dir, config_path, ensure_dir, state_path
from .report import DomainRun, ReportError, generate_report
from .validators import VALIDATOR_REGISTRY, ValidationContext, create_validator

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    args = list(argv) if argv is not None else sys.argv[1:]
    if not args:
        return _handle_no_args()

    parser = argparse.ArgumentParser(prog="readiness")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="write a default readiness.toml")
    init_parser.add_argument("--config", type=str, help="Path to config file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing config")

    subparsers.add_parser("list", help="list available validators")

    validate_parser = subparsers.add_parser("validate", help="run checklist validators")
    validate_parser.add_argument(
        "domains",
        nargs="*",
        help=f"Validators to run ({', '.join(VALIDATOR_REGISTRY)})",
    )
    validate_parser.add_argument("--all", action="store_true", help="Run every validator")
    validate_parser.add_argument("--repo", type=str, help="Path to repository")
    validate_parser.add_argument("--config", type=str, help="Path to config file")
    validate_parser.add_argument("--output", type=str, help="Write a JSON report to this path")
    validate_parser.add_argument("--plain", action="store_true", help="Plain text output")
    validate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit 1 when any check failed",
    )

    dashboard_parser = subparsers.add_parser("dashboard", help="open the progress dashboard")
    dashboard_parser.add_argument("--state-file", type=str, help="Dashboard state file")
    dashboard_parser.add_argument("--config", type=str, help="Path to config file")
    dashboard_parser.add_argument("--export-dir", type=str, help="Directory for exports")

    progress_parser = subparsers.add_parser("progress", help="print checklist progress")
    progress_parser.add_argument("--state-file", type=str, help="Dashboard state file")
    progress_parser.add_argument("--config", type=str, help="Path to config file")
    progress_parser.add_argument("--plain", action="store_true", help="Plain text output")

    toggle_parser = subparsers.add_parser("toggle", help="check or uncheck a checklist item")
    toggle_parser.add_argument("checklist", choices=CHECKLIST_NAMES)
    toggle_parser.add_argument("index", type=int, help="Zero-based item index")
    toggle_parser.add_argument("--uncheck", action="store_true", help="Uncheck the item")
    toggle_parser.add_argument("--total", type=int, help="Number of items in the checklist")
    toggle_parser.add_argument("--state-file", type=str, help="Dashboard state file")
    toggle_parser.add_argument("--config", type=str, help="Path to config file")

    reset_parser = subparsers.add_parser("reset", help="reset checklist progress")
    reset_parser.add_argument("checklists", nargs="*", help="Checklists to reset (default: all)")
    reset_parser.add_argument("--state-file", type=str, help="Dashboard state file")
    reset_parser.add_argument("--config", type=str, help="Path to config file")

    export_parser = subparsers.add_parser("export", help="export checklist progress")
    export_parser.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    export_parser.add_argument("--output-dir", type=str, help="Directory for the export file")
    export_parser.add_argument("--state-file", type=str, help="Dashboard state file")
    export_parser.add_argument("--config", type=str, help="Path to config file")

    parsed = parser.parse_args(args)
    _configure_logging(parsed.verbose)

    try:
        if parsed.command == "init":
            return _command_init(parsed.config, parsed.force)
        if parsed.command == "list":
            return _command_list()
        if parsed.command == "validate":
            return _command_validate(parsed)
        if parsed.command == "dashboard":
            return _command_dashboard(parsed)
        if parsed.command == "progress":
            return _command_progress(parsed)
        if parsed.command == "toggle":
            return _command_toggle(parsed)
        if parsed.command == "reset":
            return _command_reset(parsed)
        if parsed.command == "export":
            return _command_export(parsed)
    except (ConfigError, ReportError, ValueError, OSError) as exc:
        print(f"Error: {sanitize_error(redact(str(exc)))}")
        return 1

    parser.print_help()
    return 1


def _handle_no_args() -> int:
    cfg_path = config_path()
    if not cfg_path.exists():
        return _command_init(None, False)
    print(splash())
    print("Config exists. Run one of:")
    print("  readiness validate --all")
    print("  readiness dashboard")
    print("  readiness init --force")
    return 0


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _command_init(config_override: str | None, force: bool) -> int:
    cfg_path = _resolve_config_path(config_override)
    if cfg_path.exists() and not force:
        print(f"Config already exists at {cfg_path}. Use --force to overwrite.")
        return 1

    base_dir = app_base_dir()
    ensure_dir(base_dir)
    ensure_dir(base_dir / "reports")
    ensure_dir(cfg_path.parent)

    cfg_path.write_text(default_config_text(base_dir), encoding="utf-8")
    print(splash())
    print(f"Initialized config at {cfg_path}")
    return 0


def _command_list() -> int:
    for name, validator_cls in VALIDATOR_REGISTRY.items():
        print(f"{name:<10} {validator_cls.title}")
    return 0


def _command_validate(parsed: argparse.Namespace) -> int:
    repo = Path(parsed.repo) if parsed.repo else None
    cfg = _load(parsed.config, ConfigOverrides(repo_path=repo))

    repo_path = cfg.repo_path.expanduser().resolve()
    if not repo_path.is_dir():
        print(f"Repo path not found: {repo_path}")
        return 1

    domains = _resolve_domains(parsed.domains, parsed.all, cfg.validators)
    ctx = ValidationContext.from_config(cfg)
    ctx.repo_path = repo_path

    runs: list[DomainRun] = []
    for name in domains:
        runs.append(_run_validator(name, ctx, force_plain=parsed.plain))

    if len(runs) > 1:
        rows = [
            SummaryRow(
                domain=run.domain,
                passed=len(run.results.passed),
                failed=len(run.results.failed),
                warnings=len(run.results.warnings),
                not_checked=len(run.results.not_checked),
            )
            for run in runs
        ]
        print(render_summary(rows, force_plain=parsed.plain))

    output_path = _report_path(parsed.output, cfg)
    if output_path is not None:
        generate_report(runs, output_path, repo_path)
        print(f"Report written: {output_path}")

    if parsed.strict and any(run.results.failed for run in runs):
        return 1
    return 0


def _report_path(output: str | None, cfg: ReadinessConfig) -> Path | None:
    if output:
        return Path(output).expanduser().resolve()
    if cfg.report_dir is None:
        return None
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return cfg.report_dir / f"readiness-report-{stamp}.json"


def _run_validator(name: str, ctx: ValidationContext, *, force_plain: bool = False) -> DomainRun:
    validator = create_validator(name)
    print(f"Starting {validator.title} Validation...")
    results = validator.run(ctx, progress=print)
    print(render_results(validator.title, results, force_plain=force_plain))
    return DomainRun(domain=validator.name, title=validator.title, results=results)


def _resolve_domains(
    requested: Sequence[str],
    run_all: bool,
    configured: Sequence[str],
) -> list[str]:
    if run_all:
        return list(VALIDATOR_REGISTRY)
    names = list(requested) or list(configured) or list(VALIDATOR_REGISTRY)
    unknown = [n for n in names if n not in VALIDATOR_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown validator: {', '.join(unknown)}")
    return names


def _command_dashboard(parsed: argparse.Namespace) -> int:
    state_file = _resolve_state_file(parsed.state_file, parsed.config)
    export_dir = Path(parsed.export_dir).expanduser().resolve() if parsed.export_dir else None
    try:
        return run_dashboard(state_file, export_dir=export_dir)
    except RuntimeError as exc:
        print(f"Error: {exc}")
        return 1


def _command_progress(parsed: argparse.Namespace) -> int:
    state = _state(parsed)
    rows = []
    for name in CHECKLIST_NAMES:
        percent = state.progress(name)
        updated = state.last_updated(name)
        rows.append(
            ProgressRow(
                checklist=name,
                percent=percent,
                color=progress_color(percent),
                last_updated=updated.strftime("%Y-%m-%d %H:%M") if updated else None,
            )
        )
    print(render_progress(rows, state.global_progress(), force_plain=parsed.plain))
    return 0


def _command_toggle(parsed: argparse.Namespace) -> int:
    state = _state(parsed)
    checked = not parsed.uncheck
    state.toggle(parsed.checklist, parsed.index, checked=checked, total=parsed.total)
    label = "checked" if checked else "unchecked"
    print(f"{parsed.checklist} item {parsed.index} {label} ({state.progress(parsed.checklist)}%)")
    return 0


def _command_reset(parsed: argparse.Namespace) -> int:
    state = _state(parsed)
    names = parsed.checklists or list(CHECKLIST_NAMES)
    for name in names:
        state.reset(name)
    print(f"Reset {', '.join(names)}")
    return 0


def _command_export(parsed: argparse.Namespace) -> int:
    state = _state(parsed)
    output_dir = Path(parsed.output_dir).expanduser().resolve() if parsed.output_dir else Path.cwd()
    path = write_export(state, parsed.format, output_dir)
    print(f"Exported: {path}")
    return 0


def _state(parsed: argparse.Namespace) -> ChecklistStateStore:
    return ChecklistStateStore(JsonFileStore(_resolve_state_file(parsed.state_file, parsed.config)))


def _resolve_state_file(override: str | None, config_override: str | None) -> Path:
    if override:
        return Path(override).expanduser().resolve()
    cfg = _load(config_override, ConfigOverrides())
    return cfg.state_file or state_path()


def _load(config_override: str | None, overrides: ConfigOverrides) -> ReadinessConfig:
    cfg_path = _resolve_config_path(config_override)
    if config_override and not cfg_path.exists():
        raise ConfigError(f"Config not found at {cfg_path}")
    return load_config(cfg_path, overrides=overrides, base_dir=app_base_dir())


def _resolve_config_path(config_override: str | None) -> Path:
    if config_override:
        return Path(config_override).expanduser().resolve()
    return config_path()


def _domain_main(name: str) -> int:
    """Validate the current directory with one validator."""
    try:
        cfg = load_config(
            config_path(),
            overrides=ConfigOverrides(repo_path=Path.cwd()),
            base_dir=app_base_dir(),
        )
        _run_validator(name, ValidationContext.from_config(cfg))
    except Exception as exc:
        logger.debug("%s validator aborted", name, exc_info=True)
        print(f"Validation failed: {redact(str(exc))}")
        return 1
    return 0


def aiml_main() -> int:
    return _domain_main("aiml")


def backend_main() -> int:
    return _domain_main("backend")


def cloud_main() -> int:
    return _domain_main("cloud")


def data_main() -> int:
    return _domain_main("data")


def devops_main() -> int:
    return _domain_main("devops")


def frontend_main() -> int:
    return _domain_main("frontend")


def mobile_main() -> int:
    return _domain_main("mobile")


def security_main() -> int:
    return _domain_main("security")


if __name__ == "__main__":
    raise SystemExit(main())
