"""Emergency recovery snapshots keyed by validated filename.

Layout: ``<root>/recovery/<key>.json``. Records are written atomically, read on
demand, and only ever removed by :meth:`RecoveryStore.sweep_expired`.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from quickpane_store.atomic_io import read_json, serialized_size, write_json_atomic
from quickpane_store.errors import DataTooLarge, RecordNotFound, StoreIOError
from quickpane_store.validation import validate_filename

RECOVERY_DIRNAME = "recovery"
RECORD_SUFFIX = ".json"
MAX_RECOVERY_DATA_BYTES = 10_485_760
RECOVERY_MAX_AGE_SECONDS = 7 * 24 * 60 * 60

_LOGGER = logging.getLogger("QuickPane.Store.Recovery")


class RecoveryStore:
    def __init__(
        self,
        root: Path,
        *,
        max_bytes: int = MAX_RECOVERY_DATA_BYTES,
        max_age_seconds: float = RECOVERY_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.directory = self.root / RECOVERY_DIRNAME
        self.max_bytes = int(max_bytes)
        self.max_age_seconds = float(max_age_seconds)
        self._clock = clock

    def path_for(self, key: str) -> Path:
        validate_filename(key)
        return self.directory / f"{key}{RECORD_SUFFIX}"

    def save(self, key: str, document: Any) -> Path:
        _LOGGER.info("Saving emergency data to file: %s", key)
        path = self.path_for(key)
        size = serialized_size(document)
        if size > self.max_bytes:
            _LOGGER.warning("Emergency data for %s rejected: %d bytes exceeds %d", key, size, self.max_bytes)
            raise DataTooLarge(self.max_bytes, size)
        write_json_atomic(path, document)
        _LOGGER.info("Successfully saved emergency data to %s", path)
        return path

    def load(self, key: str) -> Any:
        _LOGGER.info("Loading emergency data from file: %s", key)
        path = self.path_for(key)
        try:
            document = read_json(path)
        except RecordNotFound:
            _LOGGER.info("Recovery file not found: %s", path)
            raise
        _LOGGER.info("Successfully loaded emergency data")
        return document

    def sweep_expired(self, max_age_seconds: Optional[float] = None) -> int:
        """Remove records whose modification time is older than the threshold.

        Returns the number of files removed. Problems with an individual file
        are logged and skipped.
        """

        threshold = self.max_age_seconds if max_age_seconds is None else float(max_age_seconds)
        _LOGGER.info("Cleaning up old recovery files")
        now = self._clock()
        try:
            entries = list(self.directory.iterdir())
        except FileNotFoundError:
            _LOGGER.info("Recovery directory %s does not exist; nothing to clean", self.directory)
            return 0
        except OSError as exc:
            _LOGGER.error("Failed to read recovery directory: %s", exc)
            raise StoreIOError(str(exc)) from exc

        removed = 0
        for path in entries:
            if path.suffix != RECORD_SUFFIX:
                continue
            try:
                modified = path.stat().st_mtime
            except FileNotFoundError:
                continue
            except OSError as exc:
                _LOGGER.warning("Failed to get file metadata for %s: %s", path, exc)
                continue
            if now - modified <= threshold:
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                _LOGGER.debug("Recovery file %s vanished before removal", path)
                continue
            except OSError as exc:
                _LOGGER.warning("Failed to remove old recovery file %s: %s", path, exc)
                continue
            _LOGGER.info("Removed old recovery file: %s", path)
            removed += 1

        _LOGGER.info("Cleanup complete. Removed %d old recovery files", removed)
        return removed
