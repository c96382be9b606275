"""Rule primitives evaluated against a target repository.

Every rule appends human-readable messages to a ``ValidationResults``. Rules
that read files record their own read/parse errors as ``"<label> check failed:
<message>"``; anything else propagates to the validator section boundary.
"""

from __future__ import annotations

import configparser
import json
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import yaml

from .commands import CommandError, describe_failure, parse_json_output
from .results import Bucket, ValidationResults
from .secrets import scan_paths

if TYPE_CHECKING:
    from .validators.base import ValidationContext

logger = logging.getLogger(__name__)

MANUAL_PREFIX = "Manual verification required: "

_PARSE_ERRORS: tuple[type[Exception], ...] = (
    OSError,
    ValueError,
    yaml.YAMLError,
    configparser.Error,
)


class Check(Protocol):
    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None: ...


@dataclass(frozen=True)
class FileExists:
    path: str
    found: str
    missing: str
    missing_bucket: Bucket = Bucket.WARNING

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        if ctx.exists(self.path):
            results.pass_(self.found.format(path=self.path))
        else:
            results.add(self.missing_bucket, self.missing.format(path=self.path))


def files_exist(
    paths: Sequence[str],
    found: str,
    missing: str,
    missing_bucket: Bucket = Bucket.WARNING,
) -> list[Check]:
    return [FileExists(p, found, missing, missing_bucket) for p in paths]


@dataclass(frozen=True)
class AnyFileExists:
    """One passed entry per present path; a single miss when none exist."""

    paths: tuple[str, ...]
    found: str
    missing: str

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        present = [p for p in self.paths if ctx.exists(p)]
        for path in present:
            results.pass_(self.found.format(path=path))
        if not present:
            results.warn(self.missing)


@dataclass(frozen=True)
class Expect:
    needles: tuple[str, ...]
    found: str
    missing: str
    regex: bool = False

    def matches(self, text: str) -> bool:
        if self.regex:
            return any(re.search(n, text) for n in self.needles)
        return any(n in text for n in self.needles)


@dataclass(frozen=True)
class FileContains:
    """Read one file (glob allowed) and test each expectation against it."""

    path: str
    expectations: tuple[Expect, ...]
    absent: str | None = None
    absent_bucket: Bucket = Bucket.WARNING
    label: str = "File content"
    error_bucket: Bucket = Bucket.WARNING

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        target = ctx.resolve(self.path)
        if target is None or not target.is_file():
            if self.absent:
                results.add(self.absent_bucket, self.absent.format(path=self.path))
            return
        try:
            text = target.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            results.add(self.error_bucket, f"{self.label} check failed: {exc.strerror}")
            return
        for expect in self.expectations:
            if expect.matches(text):
                results.pass_(expect.found.format(path=self.path))
            elif expect.missing:
                results.warn(expect.missing.format(path=self.path))


@dataclass(frozen=True)
class SourceContains:
    """Pass when any file under the directories contains any needle."""

    directories: tuple[str, ...]
    extensions: tuple[str, ...]
    needles: tuple[str, ...]
    found: str
    missing: str
    regex: bool = False

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        expect = Expect(self.needles, self.found, self.missing, regex=self.regex)
        for file in ctx.files(self.directories, self.extensions):
            if expect.matches(ctx.read_text(file)):
                logger.debug("%s matched in %s", self.found, file.name)
                results.pass_(self.found)
                return
        results.warn(self.missing)


@dataclass(frozen=True)
class FilesFound:
    directory: str
    extensions: tuple[str, ...]
    found: str
    missing: str
    inspect: Callable[[ValidationContext, ValidationResults, list[Path]], None] | None = None

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        files = ctx.files((self.directory,), self.extensions)
        if not files:
            results.warn(self.missing)
            return
        results.pass_(self.found.format(count=len(files), directory=self.directory))
        if self.inspect is not None:
            self.inspect(ctx, results, files)


@dataclass(frozen=True)
class KeyExpect:
    key: str
    found: str
    missing: str


def keys_expect(keys: Sequence[str], found: str, missing: str) -> tuple[KeyExpect, ...]:
    return tuple(KeyExpect(k, found.format(key=k), missing.format(key=k)) for k in keys)


@dataclass(frozen=True)
class DocumentKeys:
    """Load a JSON/YAML/INI document and require dotted keys to be non-empty."""

    path: str
    keys: tuple[KeyExpect, ...]
    absent: str | None
    label: str
    fmt: str = "yaml"
    absent_bucket: Bucket = Bucket.WARNING
    error_bucket: Bucket = Bucket.FAILED

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        target = ctx.resolve(self.path)
        if target is None or not target.is_file():
            if self.absent:
                results.add(self.absent_bucket, self.absent.format(path=self.path))
            return
        try:
            document = load_document(target, self.fmt)
        except _PARSE_ERRORS as exc:
            results.add(self.error_bucket, f"{self.label} check failed: {_describe(exc)}")
            return
        for expect in self.keys:
            if lookup(document, expect.key):
                results.pass_(expect.found)
            else:
                results.warn(expect.missing)


@dataclass(frozen=True)
class ManualCheck:
    text: str

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        results.warn(MANUAL_PREFIX + self.text)


@dataclass(frozen=True)
class FunctionCheck:
    fn: Callable[[ValidationContext, ValidationResults], None]

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        self.fn(ctx, results)


@dataclass(frozen=True)
class SecretScan:
    directories: tuple[str, ...]
    extensions: tuple[str, ...]

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        logger.info("scanning %s for secrets", ", ".join(self.directories))
        flagged: list[str] = []
        for match in scan_paths(
            ctx.repo_path, self.directories, self.extensions, ctx.max_scan_file_kb
        ):
            rel = match.path.as_posix()
            if rel not in flagged:
                flagged.append(rel)
        for rel in flagged:
            results.fail(f"Potential secret found in {rel}")


@dataclass(frozen=True)
class DependencyAudit:
    """``npm audit --json``; npm exits non-zero when it finds vulnerabilities."""

    args: tuple[str, ...] = ("npm", "audit", "--json")

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        try:
            result = ctx.run(*self.args)
            if result.timed_out or not result.stdout.strip():
                raise CommandError(describe_failure(result))
            audit = parse_json_output(result)
        except CommandError as exc:
            results.warn(f"Dependency audit failed: {exc}")
            return
        total = lookup(audit, "metadata.vulnerabilities.total")
        error = audit.get("error") if isinstance(audit, dict) else None
        if error is not None or not isinstance(total, int) or isinstance(total, bool):
            summary = lookup(error, "summary") or lookup(error, "code")
            results.warn(f"Dependency audit failed: {summary or describe_failure(result)}")
        elif total > 0:
            results.fail(f"Vulnerable dependencies found: {total}")
        else:
            results.pass_("No vulnerable dependencies detected")


@dataclass(frozen=True)
class CommandSucceeds:
    args: tuple[str, ...]
    found: str
    failure: str
    failure_bucket: Bucket = Bucket.FAILED

    def evaluate(self, ctx: ValidationContext, results: ValidationResults) -> None:
        try:
            result = ctx.run(*self.args)
        except CommandError as exc:
            results.add(self.failure_bucket, f"{self.failure}: {exc}")
            return
        if result.ok:
            results.pass_(self.found)
        else:
            results.add(self.failure_bucket, f"{self.failure}: {describe_failure(result)}")


@dataclass(frozen=True)
class Section:
    """A titled group of checks; its label names the single failure entry."""

    heading: str
    label: str
    checks: tuple[Check, ...] = field(default_factory=tuple)


def load_document(path: Path, fmt: str) -> Any:
    text = path.read_text(encoding="utf-8")
    if fmt == "json":
        return json.loads(text)
    if fmt == "ini":
        parser = configparser.ConfigParser()
        parser.read_string(text)
        return {name: dict(parser.items(name)) for name in parser.sections()}
    return yaml.safe_load(text)


def lookup(document: Any, dotted: str) -> Any:
    current = document
    for part in dotted.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _describe(exc: Exception) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc).splitlines()[0] if str(exc) else type(exc).__name__
