from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from readiness.commands import CommandError, CommandResult
from readiness.validators import ValidationContext

WriteFile = Callable[[str, str], Path]


def make_result(args: Sequence[str], stdout: str = "", exit_code: int = 0) -> CommandResult:
    return CommandResult(
        args=tuple(args),
        exit_code=exit_code,
        stdout=stdout,
        stderr="" if exit_code == 0 else "boom",
        duration_ms=1,
        timed_out=False,
    )


class FakeRunner:
    """Answers commands by longest matching argument prefix.

    Unregistered commands behave like a missing binary.
    """

    def __init__(self, responses: dict[tuple[str, ...], Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, args: Sequence[str], cwd: Path, timeout: int) -> CommandResult:
        argv = tuple(args)
        self.calls.append(argv)
        matches = [p for p in self.responses if argv[: len(p)] == p]
        if not matches:
            raise CommandError(f"{argv[0]} not found on PATH")
        response = self.responses[max(matches, key=len)]
        if isinstance(response, CommandResult):
            return response
        stdout = response if isinstance(response, str) else json.dumps(response)
        return make_result(argv, stdout)


@pytest.fixture
def fake_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def offline_ctx(tmp_path: Path) -> ValidationContext:
    return ValidationContext(repo_path=tmp_path, runner=FakeRunner())


@pytest.fixture
def write_file(tmp_path: Path) -> WriteFile:
    def _write(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
