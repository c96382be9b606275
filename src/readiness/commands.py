from __future__ import annotations

import json
import logging
import shutil
import subprocess  # nosec B404
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from readiness_core import redact

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120
MAX_ERROR_CHARS = 300


class CommandError(Exception):
    """External command missing, timed out, failed or produced unusable output."""


@dataclass(frozen=True)
class CommandResult:
    args: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


CommandRunner = Callable[[Sequence[str], Path, int], CommandResult]


def resolve_binary(name: str) -> str:
    binary = shutil.which(name)
    if not binary:
        raise CommandError(f"{name} not found on PATH")
    return binary


def run_command(
    args: Sequence[str],
    cwd: Path,
    timeout_seconds: int = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run an external CLI without a shell and capture its output.

    Args:
        args: Program name followed by its arguments.
        cwd: Working directory (the repository under validation).
        timeout_seconds: Hard limit before the process is killed.

    Raises:
        CommandError: If the program is not installed.
    """
    if not args:
        raise CommandError("empty command")
    binary = resolve_binary(args[0])
    argv = [binary, *args[1:]]

    start = time.monotonic()
    try:
        proc = subprocess.run(  # noqa: S603  # nosec B603
            argv,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug("command %s exited %s in %sms", args[0], proc.returncode, duration_ms)
        return CommandResult(
            args=tuple(args),
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            duration_ms=duration_ms,
            timed_out=False,
        )
    except subprocess.TimeoutExpired as exc:
        duration_ms = int((time.monotonic() - start) * 1000)
        stdout = exc.stdout.decode() if isinstance(exc.stdout, bytes) else (exc.stdout or "")
        stderr = exc.stderr.decode() if isinstance(exc.stderr, bytes) else (exc.stderr or "")
        return CommandResult(
            args=tuple(args),
            exit_code=124,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            timed_out=True,
        )


def require_success(result: CommandResult) -> CommandResult:
    if result.timed_out:
        raise CommandError(f"{' '.join(result.args)} timed out")
    if result.exit_code != 0:
        raise CommandError(describe_failure(result))
    return result


def parse_json_output(result: CommandResult) -> Any:
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise CommandError(f"{' '.join(result.args)} produced invalid JSON: {exc}") from exc


def describe_failure(result: CommandResult) -> str:
    detail = (result.stderr or result.stdout).strip().splitlines()
    summary = detail[0] if detail else "no output"
    message = f"Command failed: {' '.join(result.args)}: {summary}"
    if len(message) > MAX_ERROR_CHARS:
        message = message[:MAX_ERROR_CHARS] + "..."
    return redact(message)
