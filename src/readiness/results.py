from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Bucket(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warnings"
    NOT_CHECKED = "notChecked"


@dataclass
class ValidationResults:
    """Append-only accumulator for one validator run."""

    passed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    not_checked: list[str] = field(default_factory=list)

    def add(self, bucket: Bucket, message: str) -> None:
        self.bucket(bucket).append(message)

    def bucket(self, bucket: Bucket) -> list[str]:
        if bucket is Bucket.PASSED:
            return self.passed
        if bucket is Bucket.FAILED:
            return self.failed
        if bucket is Bucket.WARNING:
            return self.warnings
        return self.not_checked

    def pass_(self, message: str) -> None:
        self.passed.append(message)

    def fail(self, message: str) -> None:
        self.failed.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def skip(self, message: str) -> None:
        self.not_checked.append(message)

    @property
    def ok(self) -> bool:
        return not self.failed

    def counts(self) -> dict[str, int]:
        return {bucket.value: len(self.bucket(bucket)) for bucket in Bucket}

    def to_dict(self) -> dict[str, list[str]]:
        return {bucket.value: list(self.bucket(bucket)) for bucket in Bucket}
