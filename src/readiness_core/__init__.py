"""Shared primitives for the readiness validators and dashboard."""

from __future__ import annotations

from .atomic import write_atomic
from .redaction import redact
from .storage import JsonFileStore, KeyValueStore, MemoryStore, StorageEvent

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StorageEvent",
    "redact",
    "write_atomic",
]
