"""Crash-safe JSON file primitives.

Writes go to a sibling ``.tmp`` file which is then swapped over the final path
with :func:`os.replace`, so a reader sees either the previous complete file or
the new complete file.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from quickpane_store.errors import ParseError, RecordNotFound, StoreIOError

_LOGGER = logging.getLogger("QuickPane.Store")


def temp_path_for(path: Path) -> Path:
    return path.with_suffix(".tmp")


def ensure_directory(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StoreIOError(f"Failed to create directory {path}: {exc}") from exc
    return path


def _dumps(payload: Any, **options: Any) -> str:
    # Lone surrogates survive json.dumps but cannot be written as UTF-8.
    try:
        text = json.dumps(payload, ensure_ascii=False, allow_nan=False, **options)
        text.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise ParseError(str(exc)) from exc
    return text


def serialize(payload: Any, *, indent: Optional[int] = 2) -> str:
    return _dumps(payload, indent=indent)


def serialized_size(payload: Any) -> int:
    """Return the byte length of the compact JSON encoding of ``payload``."""

    text = json_compact(payload)
    return len(text.encode("utf-8"))


def json_compact(payload: Any) -> str:
    return _dumps(payload, separators=(",", ":"))


def write_json_atomic(path: Path, payload: Any, *, indent: Optional[int] = 2) -> Path:
    text = serialize(payload, indent=indent)
    ensure_directory(path.parent)
    tmp_path = temp_path_for(path)
    try:
        tmp_path.write_text(text, encoding="utf-8")
    except OSError as exc:
        _LOGGER.error("Failed to write %s: %s", tmp_path, exc)
        _discard(tmp_path)
        raise StoreIOError(str(exc)) from exc
    try:
        tmp_path.replace(path)
    except OSError as exc:
        # The stray temp file is left behind; the next save overwrites it.
        _LOGGER.error("Failed to finalize %s: %s", path, exc)
        raise StoreIOError(str(exc)) from exc
    return path


def read_json(path: Path) -> Any:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise RecordNotFound(path) from exc
    except OSError as exc:
        _LOGGER.error("Failed to read %s: %s", path, exc)
        raise StoreIOError(str(exc)) from exc
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        _LOGGER.error("Failed to parse %s: %s", path, exc)
        raise ParseError(str(exc)) from exc


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        _LOGGER.debug("Could not remove temporary file %s: %s", path, exc)
