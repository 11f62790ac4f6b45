"""Error taxonomy surfaced by the durable store.

Each error carries a ``kind`` tag so the host can branch on it without
importing these classes (the command layer forwards ``to_payload()``).
"""
from __future__ import annotations

from typing import Any, Dict


class StoreError(Exception):
    """Base class for every failure raised by :mod:`quickpane_store`."""

    kind = "StoreError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.kind}
        if self.message:
            payload["message"] = self.message
        return payload

    def __str__(self) -> str:
        return self.message


class RecordNotFound(StoreError):
    """Expected absence of a record; callers branch on it rather than alarm."""

    kind = "FileNotFound"

    def __init__(self, path: Any = None) -> None:
        super().__init__("")
        self.path = path

    def __str__(self) -> str:
        return "File not found"


class ValidationError(StoreError):
    kind = "ValidationError"

    def __str__(self) -> str:
        return f"Validation error: {self.message}"


class DataTooLarge(StoreError):
    kind = "DataTooLarge"

    def __init__(self, max_bytes: int, actual_bytes: int | None = None) -> None:
        super().__init__("")
        self.max_bytes = int(max_bytes)
        self.actual_bytes = actual_bytes

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.kind, "max_bytes": self.max_bytes}

    def __str__(self) -> str:
        return f"Data too large (max {self.max_bytes} bytes)"


class StoreIOError(StoreError):
    """Filesystem or platform failure; prior on-disk content is left intact."""

    kind = "IoError"

    def __str__(self) -> str:
        return f"IO error: {self.message}"


class ParseError(StoreError):
    kind = "ParseError"

    def __str__(self) -> str:
        return f"Parse error: {self.message}"
