from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_TIMEOUT_SECONDS = 120
DEFAULT_MAX_SCAN_FILE_KB = 1024


class ConfigError(Exception):
    """Raised when readiness.toml cannot be parsed or holds invalid values."""


@dataclass(frozen=True)
class FrontendSettings:
    target_url: str | None = None
    coverage_threshold: float = 80.0
    max_bundle_kb: int = 244


@dataclass(frozen=True)
class MobileSettings:
    min_ios_target: float = 12.0
    min_android_sdk: int = 21
    max_bundle_mb: int = 100


@dataclass(frozen=True)
class ReadinessConfig:
    repo_path: Path
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    validators: list[str] = field(default_factory=list)
    max_scan_file_kb: int = DEFAULT_MAX_SCAN_FILE_KB
    state_file: Path | None = None
    report_dir: Path | None = None
    frontend: FrontendSettings = field(default_factory=FrontendSettings)
    mobile: MobileSettings = field(default_factory=MobileSettings)


@dataclass(frozen=True)
class ConfigOverrides:
    repo_path: Path | None = None
    state_file: Path | None = None


def load_config(
    path: Path | None,
    overrides: ConfigOverrides | None = None,
    base_dir: Path | None = None,
) -> ReadinessConfig:
    """Load readiness.toml, falling back to defaults when the file is absent."""
    data: dict[str, Any] = {}
    if path is not None and path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Invalid config {path.name}: {exc}") from exc

    overrides = overrides or ConfigOverrides()
    base = base_dir or Path.cwd()

    repo_path = overrides.repo_path or Path(_as_str(data, "repo_path", "."))
    state_raw = data.get("state_file")
    state_file = overrides.state_file or (_resolve(base, Path(state_raw)) if state_raw else None)
    report_raw = data.get("report_dir")

    frontend_data = _section(data, "frontend")
    mobile_data = _section(data, "mobile")

    return ReadinessConfig(
        repo_path=repo_path,
        timeout_seconds=_as_int(data, "timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        validators=_as_str_list(data, "validators"),
        max_scan_file_kb=_as_int(data, "max_scan_file_kb", DEFAULT_MAX_SCAN_FILE_KB),
        state_file=state_file,
        report_dir=_resolve(base, Path(report_raw)) if report_raw else None,
        frontend=FrontendSettings(
            target_url=frontend_data.get("target_url") or None,
            coverage_threshold=float(frontend_data.get("coverage_threshold", 80.0)),
            max_bundle_kb=_as_int(frontend_data, "max_bundle_kb", 244),
        ),
        mobile=MobileSettings(
            min_ios_target=float(mobile_data.get("min_ios_target", 12.0)),
            min_android_sdk=_as_int(mobile_data, "min_android_sdk", 21),
            max_bundle_mb=_as_int(mobile_data, "max_bundle_mb", 100),
        ),
    )


def default_config_text(base_dir: Path) -> str:
    return (
        "# Enterprise readiness configuration\n"
        'repo_path = "."\n'
        f"timeout_seconds = {DEFAULT_TIMEOUT_SECONDS}\n"
        "# Empty list runs every validator\n"
        "validators = []\n"
        f"max_scan_file_kb = {DEFAULT_MAX_SCAN_FILE_KB}\n"
        f'state_file = "{(base_dir / "dashboard-state.json").as_posix()}"\n'
        f'report_dir = "{(base_dir / "reports").as_posix()}"\n'
        "\n"
        "[frontend]\n"
        '# target_url = "http://localhost:3000"\n'
        "coverage_threshold = 80\n"
        "max_bundle_kb = 244\n"
        "\n"
        "[mobile]\n"
        "min_ios_target = 12.0\n"
        "min_android_sdk = 21\n"
        "max_bundle_mb = 100\n"
    )


def _resolve(base: Path, path: Path) -> Path:
    path = path.expanduser()
    return path if path.is_absolute() else (base / path).resolve()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _as_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _as_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer")
    return value


def _as_str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return [v.strip() for v in value if v.strip()]
