from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "readiness.toml"
STATE_FILENAME = "dashboard-state.json"


def app_base_dir() -> Path:
    override = os.environ.get("READINESS_HOME")
    if override:
        return Path(override).expanduser().resolve()
    return (Path.home() / ".readiness").resolve()


def config_path() -> Path:
    return app_base_dir() / CONFIG_FILENAME


def state_path() -> Path:
    override = os.environ.get("READINESS_STATE_FILE")
    if override:
        return Path(override).expanduser().resolve()
    return app_base_dir() / STATE_FILENAME


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
