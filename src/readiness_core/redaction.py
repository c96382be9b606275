"""Masking of credentials in text that leaves the process.

Validator messages quote command output from the cloud CLIs, config file
contents and exception strings; all of it passes through ``redact`` before it
is printed, logged or written to a report.
"""

from __future__ import annotations

import re

MASK = "[REDACTED]"

# (pattern, replacement); replacements keep the field name so output stays readable
_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(
            r"(?i)(api[_-]?key|token|secret|password|passwd)(\"?\s*[:=]\s*\"?)([^\s,;\"']+)"
        ),
        rf"\1\2{MASK}",
    ),
    (re.compile(r"(?i)\b(bearer)\s+[a-z0-9\-._~+/]+=*"), rf"\1 {MASK}"),
    (re.compile(r"(?i)\b(aws_secret_access_key|client_secret)\s+\S+"), rf"\1 {MASK}"),
    (re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b"), MASK),
    (re.compile(r"(?i)\b(AccountKey|SharedAccessKey|sig)=[^;&\s]+"), rf"\1={MASK}"),
    (re.compile(r"(?i)\b([a-z][a-z0-9+.-]*://[^:/@\s]+):[^@/\s]+@"), rf"\1:{MASK}@"),
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S),
        MASK,
    ),
)


def redact(text: str) -> str:
    """Mask likely credentials in ``text``; everything else is left as is."""
    for pattern, replacement in _RULES:
        text = pattern.sub(replacement, text)
    return text
