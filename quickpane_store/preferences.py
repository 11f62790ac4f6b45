"""Preferences singleton persisted as ``preferences.json``."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from quickpane_store.atomic_io import read_json, write_json_atomic
from quickpane_store.errors import ParseError, RecordNotFound, ValidationError
from quickpane_store.validation import Theme, validate_theme

PREFERENCES_FILE = "preferences.json"

_LOGGER = logging.getLogger("QuickPane.Store.Preferences")


@dataclass
class PreferenceRecord:
    """Settings that are persisted to disk; saved wholesale, never patched."""

    theme: Theme = Theme.SYSTEM

    def to_payload(self) -> Dict[str, Any]:
        return {"theme": validate_theme(self.theme).value}

    @classmethod
    def from_payload(cls, data: Any) -> "PreferenceRecord":
        if not isinstance(data, Mapping):
            raise ParseError("Preferences must be a JSON object")
        if "theme" not in data:
            raise ParseError("missing field `theme`")
        try:
            theme = validate_theme(data["theme"])
        except ValidationError as exc:
            raise ParseError(exc.message) from exc
        return cls(theme=theme)


class PreferencesStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._path = self.root / PREFERENCES_FILE

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PreferenceRecord:
        _LOGGER.debug("Loading preferences from disk")
        try:
            data = read_json(self._path)
        except RecordNotFound:
            _LOGGER.info("Preferences file not found, using defaults")
            return PreferenceRecord()
        record = PreferenceRecord.from_payload(data)
        _LOGGER.info("Successfully loaded preferences")
        return record

    def save(self, record: Union[PreferenceRecord, Mapping[str, Any]]) -> PreferenceRecord:
        if isinstance(record, Mapping):
            theme = validate_theme(record.get("theme"))
            record = PreferenceRecord(theme=theme)
        else:
            record = PreferenceRecord(theme=validate_theme(record.theme))
        _LOGGER.debug("Saving preferences to disk: %s", record)
        write_json_atomic(self._path, record.to_payload())
        _LOGGER.info("Successfully saved preferences to %s", self._path)
        return record
