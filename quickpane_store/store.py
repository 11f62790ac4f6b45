"""Facade over the preferences singleton and the recovery record collection."""
from __future__ import annotations

import threading
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

from quickpane_store.preferences import PreferenceRecord, PreferencesStore
from quickpane_store.recovery import (
    MAX_RECOVERY_DATA_BYTES,
    RECOVERY_MAX_AGE_SECONDS,
    RecoveryStore,
)
from quickpane_store.validation import Theme, validate_filename

if TYPE_CHECKING:
    from quickpane_host.settings import CoreSettings

PREFERENCES_KEY = "preferences"


class DurableStore:
    """Validates, writes, reads and retires JSON records under one data root.

    Writers of the same key are serialized in-process so two threads never
    share the key's temporary file at the same time; other keys do not wait.
    """

    def __init__(
        self,
        root: Path,
        *,
        max_recovery_bytes: int = MAX_RECOVERY_DATA_BYTES,
        recovery_max_age_seconds: float = RECOVERY_MAX_AGE_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.root = Path(root)
        self.preferences = PreferencesStore(self.root)
        recovery_kwargs: Dict[str, Any] = {
            "max_bytes": max_recovery_bytes,
            "max_age_seconds": recovery_max_age_seconds,
        }
        if clock is not None:
            recovery_kwargs["clock"] = clock
        self.recovery = RecoveryStore(self.root, **recovery_kwargs)
        self._locks_guard = threading.Lock()
        # entries vanish once no writer holds the lock
        self._key_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    @classmethod
    def from_settings(cls, settings: "CoreSettings") -> "DurableStore":
        return cls(
            settings.data_dir,
            max_recovery_bytes=settings.recovery_max_bytes,
            recovery_max_age_seconds=settings.recovery_max_age_seconds,
        )

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    # Preferences --------------------------------------------------------

    def load_preferences(self) -> PreferenceRecord:
        return self.preferences.load()

    def save_preferences(self, record: Union[PreferenceRecord, Theme, str, Dict[str, Any]]) -> PreferenceRecord:
        if isinstance(record, (str, Theme)):
            record = {"theme": record}
        with self._lock_for(PREFERENCES_KEY):
            return self.preferences.save(record)

    # Recovery -----------------------------------------------------------

    def save_recovery(self, key: str, document: Any) -> Path:
        validate_filename(key)
        with self._lock_for(f"recovery/{key}"):
            return self.recovery.save(key, document)

    def load_recovery(self, key: str) -> Any:
        return self.recovery.load(key)

    def sweep_expired(self, max_age_seconds: Optional[float] = None) -> int:
        return self.recovery.sweep_expired(max_age_seconds)

    # Generic keyed access -------------------------------------------------

    def save(self, key: str, record: Any) -> Any:
        """Save by key; ``"preferences"`` always means the preferences singleton.

        A recovery record named ``preferences`` is reachable only through
        :meth:`save_recovery` and :meth:`load_recovery`.
        """
        if key == PREFERENCES_KEY:
            return self.save_preferences(record)
        return self.save_recovery(key, record)

    def load(self, key: str) -> Any:
        if key == PREFERENCES_KEY:
            return self.load_preferences()
        return self.load_recovery(key)
