"""Regex-based secret detection over repository source trees.

The pattern set is intentionally small and noisy: a hit means "a human should
look at this file", not "a credential leaked".
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SECRET_PATTERNS: dict[str, re.Pattern[str]] = {
    "api-key": re.compile(r"api[_-]?key\s*[:=]\s*['\"][A-Za-z0-9\-_]{16,}", re.IGNORECASE),
    "secret": re.compile(r"secret\s*[:=]\s*['\"][A-Za-z0-9\-_]{8,}", re.IGNORECASE),
    "password": re.compile(r"password\s*[:=]\s*['\"][^'\"]{6,}", re.IGNORECASE),
    "token": re.compile(r"token\s*[:=]\s*['\"][A-Za-z0-9\-_]{16,}", re.IGNORECASE),
}

SKIPPED_DIRS = frozenset({"node_modules", ".git"})


@dataclass(frozen=True)
class SecretMatch:
    path: Path
    rule: str


def walk_files(root: Path, extensions: Sequence[str]) -> Iterator[Path]:
    """Yield files under ``root`` whose name ends with one of ``extensions``.

    A missing root yields nothing. Output order is stable (sorted per directory).
    """
    if not root.is_dir():
        return
    suffixes = tuple(extensions)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        for filename in sorted(filenames):
            if filename.endswith(suffixes):
                yield Path(dirpath) / filename


def scan_text(text: str) -> list[str]:
    return [name for name, pattern in SECRET_PATTERNS.items() if pattern.search(text)]


def scan_paths(
    repo_path: Path,
    directories: Sequence[str],
    extensions: Sequence[str],
    max_file_kb: int = 1024,
) -> list[SecretMatch]:
    matches: list[SecretMatch] = []
    for directory in directories:
        for file in walk_files(repo_path / directory, extensions):
            try:
                if file.stat().st_size > max_file_kb * 1024:
                    logger.info("skipping large file during secret scan: %s", file.name)
                    continue
                content = file.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("could not read %s: %s", file.name, exc.strerror)
                continue
            for rule in scan_text(content):
                matches.append(SecretMatch(path=file.relative_to(repo_path), rule=rule))
    return matches
