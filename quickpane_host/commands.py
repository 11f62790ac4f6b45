"""In-process command surface the host application calls into.

Every command returns a :class:`CommandResult` instead of raising, so menu
handlers, shortcut callbacks and UI code can branch on ``ok`` and on the
``error["type"]`` tag (``FileNotFound``, ``ValidationError``, ...).
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from quickpane_overlay.focus_tracking import FocusTracker, create_focus_tracker
from quickpane_overlay.lifecycle import OverlayError, OverlayLifecycle, OverlaySurface
from quickpane_store.errors import StoreError, ValidationError
from quickpane_store.store import DurableStore
from quickpane_store.validation import validate_string_input
from quickpane_store.worker import StoreWorker

from quickpane_host.settings import CoreSettings

_LOGGER = logging.getLogger("QuickPane.Host.Commands")
_STORE_COMMANDS = frozenset(
    {
        "load_preferences",
        "save_preferences",
        "save_emergency_data",
        "load_emergency_data",
        "cleanup_old_recovery_files",
    }
)


@dataclass
class CommandResult:
    ok: bool
    value: Any = None
    error: Optional[Dict[str, Any]] = field(default=None)

    @property
    def error_type(self) -> Optional[str]:
        if not self.error:
            return None
        return self.error.get("type")


class CommandHost:
    """Maps command names onto the store and the overlay lifecycle.

    Store commands run on ``worker`` when one is supplied; overlay commands
    always run on the calling thread, which must be the control thread.
    """

    def __init__(
        self,
        store: DurableStore,
        overlay: Optional[OverlayLifecycle] = None,
        *,
        worker: Optional[StoreWorker] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.overlay = overlay
        self.worker = worker
        self._logger = logger or _LOGGER
        self._commands: Dict[str, Callable[..., Any]] = {
            "greet": self._greet,
            "load_preferences": self._load_preferences,
            "save_preferences": self._save_preferences,
            "save_emergency_data": self._save_emergency_data,
            "load_emergency_data": self._load_emergency_data,
            "cleanup_old_recovery_files": self.store.sweep_expired,
            "show_quick_pane": self._overlay_action("show"),
            "hide_quick_pane": self._overlay_action("hide"),
            "dismiss_quick_pane": self._overlay_action("dismiss"),
            "toggle_quick_pane": self._toggle_quick_pane,
        }

    @property
    def command_names(self) -> list[str]:
        return sorted(self._commands)

    # Public API ---------------------------------------------------------

    def invoke(self, name: str, /, **kwargs: Any) -> CommandResult:
        handler = self._commands.get(name)
        if handler is None:
            self._logger.debug("Unknown command: %s", name)
            return CommandResult(ok=False, error={"type": "UnknownCommand", "message": name})
        try:
            inspect.signature(handler).bind(**kwargs)
        except TypeError as exc:
            self._logger.warning("Command %s called with invalid arguments: %s", name, exc)
            return CommandResult(ok=False, error={"type": "ValidationError", "message": str(exc)})
        try:
            if self.worker is not None and name in _STORE_COMMANDS:
                value = self.worker.submit(lambda: handler(**kwargs), wait=True)
            else:
                value = handler(**kwargs)
        except StoreError as exc:
            self._log_store_error(name, exc)
            return CommandResult(ok=False, error=exc.to_payload())
        except OverlayError as exc:
            self._logger.error("Command %s failed: %s", name, exc)
            return CommandResult(ok=False, error={"type": "OverlayError", "message": str(exc)})
        except Exception as exc:
            self._logger.error("Command %s failed unexpectedly", name, exc_info=exc)
            return CommandResult(ok=False, error={"type": "InternalError", "message": str(exc)})
        return CommandResult(ok=True, value=value)

    def load_preferences(self) -> CommandResult:
        return self.invoke("load_preferences")

    def save_preferences(self, theme: Any) -> CommandResult:
        return self.invoke("save_preferences", theme=theme)

    def save_emergency_data(self, filename: str, data: Any) -> CommandResult:
        return self.invoke("save_emergency_data", filename=filename, data=data)

    def load_emergency_data(self, filename: str) -> CommandResult:
        return self.invoke("load_emergency_data", filename=filename)

    def cleanup_old_recovery_files(self) -> CommandResult:
        return self.invoke("cleanup_old_recovery_files")

    def show_quick_pane(self) -> CommandResult:
        return self.invoke("show_quick_pane")

    def hide_quick_pane(self) -> CommandResult:
        return self.invoke("hide_quick_pane")

    def dismiss_quick_pane(self) -> CommandResult:
        return self.invoke("dismiss_quick_pane")

    def toggle_quick_pane(self) -> CommandResult:
        return self.invoke("toggle_quick_pane")

    def greet(self, name: str) -> str:
        result = self.invoke("greet", name=name)
        if result.ok:
            return result.value
        return f"Error: {result.error.get('message', '') if result.error else ''}"

    # Implementation details --------------------------------------------

    def _greet(self, name: str) -> str:
        try:
            validate_string_input(name, 100, "Name")
        except ValidationError as exc:
            self._logger.warning("Invalid greet input: %s", exc.message)
            raise
        self._logger.info("Greeting user: %s", name)
        return f"Hello, {name}! You've been greeted from Python!"

    def _load_preferences(self) -> Dict[str, Any]:
        return self.store.load_preferences().to_payload()

    def _save_preferences(self, theme: Any = None, preferences: Optional[Mapping[str, Any]] = None) -> None:
        record = dict(preferences) if preferences is not None else {"theme": theme}
        self.store.save_preferences(record)

    def _save_emergency_data(self, filename: str, data: Any) -> None:
        self.store.save_recovery(filename, data)

    def _load_emergency_data(self, filename: str) -> Any:
        return self.store.load_recovery(filename)

    def _require_overlay(self) -> OverlayLifecycle:
        if self.overlay is None:
            raise OverlayError("find", RuntimeError("quick pane window not initialised"))
        return self.overlay

    def _overlay_action(self, action: str) -> Callable[[], None]:
        def _run() -> None:
            if self.overlay is None and action in {"hide", "dismiss"}:
                self._logger.debug("Quick pane window not found; nothing to %s", action)
                return
            getattr(self._require_overlay(), action)()

        return _run

    def _toggle_quick_pane(self) -> str:
        return self._require_overlay().toggle().value

    def shutdown(self) -> None:
        if self.worker is not None:
            self.worker.stop()

    def _log_store_error(self, name: str, exc: StoreError) -> None:
        if exc.kind == "FileNotFound":
            self._logger.info("Command %s: %s", name, exc)
        elif exc.kind in {"ValidationError", "DataTooLarge"}:
            self._logger.warning("Command %s rejected: %s", name, exc)
        else:
            self._logger.error("Command %s failed: %s", name, exc)


def build_command_host(
    settings: CoreSettings,
    surface: Optional[OverlaySurface] = None,
    focus_tracker: Optional[FocusTracker] = None,
    *,
    background_store: bool = False,
    logger: Optional[logging.Logger] = None,
) -> CommandHost:
    """Wire the store and (when a surface is supplied) the overlay lifecycle."""

    log = logger or _LOGGER
    store = DurableStore.from_settings(settings)
    overlay: Optional[OverlayLifecycle] = None
    if surface is not None:
        tracker = focus_tracker or create_focus_tracker(
            logging.getLogger("QuickPane.Overlay.Focus"),
            enabled=settings.focus_tracking,
        )
        overlay = OverlayLifecycle(surface, tracker)
    else:
        log.info("No quick pane surface supplied; overlay commands unavailable")
    worker: Optional[StoreWorker] = None
    if background_store:
        worker = StoreWorker(logging.getLogger("QuickPane.Store.Worker"))
        worker.start()
    return CommandHost(store, overlay, worker=worker, logger=log)
