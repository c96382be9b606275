from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from readiness.config import ConfigError, ConfigOverrides, default_config_text, load_config


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "readiness.toml", base_dir=tmp_path)
    assert cfg.repo_path == Path(".")
    assert cfg.timeout_seconds == 120
    assert cfg.validators == []
    assert cfg.frontend.target_url is None
    assert cfg.mobile.min_android_sdk == 21


def test_default_config_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "readiness.toml"
    path.write_text(default_config_text(tmp_path), encoding="utf-8")
    tomllib.loads(path.read_text(encoding="utf-8"))
    cfg = load_config(path, base_dir=tmp_path)
    assert cfg.state_file == tmp_path / "dashboard-state.json"
    assert cfg.frontend.max_bundle_kb == 244


def test_overrides_win(tmp_path: Path) -> None:
    path = tmp_path / "readiness.toml"
    path.write_text('repo_path = "/somewhere"\n', encoding="utf-8")
    overrides = ConfigOverrides(repo_path=tmp_path, state_file=tmp_path / "s.json")
    cfg = load_config(path, overrides=overrides, base_dir=tmp_path)
    assert cfg.repo_path == tmp_path
    assert cfg.state_file == tmp_path / "s.json"


def test_sections_are_read(tmp_path: Path) -> None:
    path = tmp_path / "readiness.toml"
    path.write_text(
        'validators = ["backend", " cloud "]\n'
        "[frontend]\n"
        'target_url = "http://localhost:3000"\n'
        "coverage_threshold = 90\n"
        "[mobile]\n"
        "min_ios_target = 15.0\n",
        encoding="utf-8",
    )
    cfg = load_config(path, base_dir=tmp_path)
    assert cfg.validators == ["backend", "cloud"]
    assert cfg.frontend.target_url == "http://localhost:3000"
    assert cfg.frontend.coverage_threshold == 90.0
    assert cfg.mobile.min_ios_target == 15.0


def test_invalid_toml(tmp_path: Path) -> None:
    path = tmp_path / "readiness.toml"
    path.write_text("repo_path = [", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid config"):
        load_config(path, base_dir=tmp_path)


@pytest.mark.parametrize(
    "content",
    [
        "timeout_seconds = 0\n",
        'timeout_seconds = "slow"\n',
        "validators = [1]\n",
        'frontend = "x"\n',
    ],
)
def test_invalid_values(tmp_path: Path, content: str) -> None:
    path = tmp_path / "readiness.toml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, base_dir=tmp_path)
