from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from readiness_core import redact

from ..commands import (
    DEFAULT_TIMEOUT,
    CommandResult,
    CommandRunner,
    parse_json_output,
    require_success,
    run_command,
)
from ..config import FrontendSettings, MobileSettings, ReadinessConfig
from ..results import ValidationResults
from ..rules import FileExists, Section
from ..secrets import walk_files

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]


@dataclass
class ValidationContext:
    repo_path: Path
    timeout_seconds: int = DEFAULT_TIMEOUT
    max_scan_file_kb: int = 1024
    frontend: FrontendSettings = field(default_factory=FrontendSettings)
    mobile: MobileSettings = field(default_factory=MobileSettings)
    runner: CommandRunner = run_command

    @classmethod
    def from_config(
        cls, config: ReadinessConfig, runner: CommandRunner | None = None
    ) -> ValidationContext:
        return cls(
            repo_path=config.repo_path,
            timeout_seconds=config.timeout_seconds,
            max_scan_file_kb=config.max_scan_file_kb,
            frontend=config.frontend,
            mobile=config.mobile,
            runner=runner or run_command,
        )

    def path(self, relative: str) -> Path:
        return self.repo_path / relative

    def resolve(self, pattern: str) -> Path | None:
        """Return the path itself, or the first match when it is a glob."""
        if any(ch in pattern for ch in "*?["):
            matches = sorted(self.repo_path.glob(pattern))
            return matches[0] if matches else None
        return self.path(pattern)

    def exists(self, relative: str) -> bool:
        target = self.resolve(relative)
        return target is not None and target.exists()

    def files(self, directories: Sequence[str], extensions: Sequence[str]) -> list[Path]:
        found: list[Path] = []
        for directory in directories:
            found.extend(walk_files(self.path(directory), extensions))
        return found

    def read_text(self, path: Path) -> str:
        """Read a source file for scanning; files over the size cap read as empty."""
        try:
            if path.stat().st_size > self.max_scan_file_kb * 1024:
                logger.info("skipping large file during source scan: %s", path.name)
                return ""
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""

    def run(self, *args: str) -> CommandResult:
        return self.runner(args, self.repo_path, self.timeout_seconds)

    def run_json(self, *args: str) -> Any:
        return parse_json_output(require_success(self.run(*args)))


class Validator:
    """Base class for a domain checklist validator.

    Subclasses set ``name``/``title`` and return their ordered sections. Each
    section runs inside its own error boundary: an exception escaping a check
    becomes one ``"<label> failed: <message>"`` entry and the run continues.
    """

    name = ""
    title = ""

    def sections(self) -> Sequence[Section]:
        raise NotImplementedError

    def run(
        self,
        ctx: ValidationContext,
        progress: ProgressFn | None = None,
    ) -> ValidationResults:
        results = ValidationResults()
        for section in self.sections():
            if progress:
                progress(section.heading)
            try:
                for check in section.checks:
                    check.evaluate(ctx, results)
            except Exception as exc:
                logger.warning("%s: %s raised %s", self.name, section.label, type(exc).__name__)
                results.fail(f"{section.label} failed: {redact(str(exc))}")
        return results


def governance_section(domain: str) -> Section:
    """Governance, Training, and Security Awareness checks shared by most domains."""
    return Section(
        heading="Checking Governance, Training, and Security Awareness...",
        label="Governance validation",
        checks=(
            *[
                FileExists(p, "Governance doc exists: {path}", "Missing governance doc: {path}")
                for p in (
                    "docs/governance/security-policy.md",
                    "docs/governance/roles-responsibilities.md",
                    "docs/governance/code-of-conduct.md",
                )
            ],
            *[
                FileExists(p, "Training record exists: {path}", "Missing training record: {path}")
                for p in (
                    "docs/training/security-awareness.md",
                    f"docs/training/{domain}-training.md",
                )
            ],
            *[
                FileExists(
                    p,
                    "Security awareness material exists: {path}",
                    "Missing security awareness material: {path}",
                )
                for p in (
                    "docs/security/security-awareness.md",
                    "docs/security/incident-response-guide.md",
                )
            ],
        ),
    )
