"""Show/hide state machine for the quick pane overlay surface.

Visibility is read live from the surface; the only state kept here is the
process that held focus before the pane was shown, so dismissal can hand
focus back to it.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Protocol

from quickpane_overlay.focus_tracking import FocusTracker, NullFocusTracker

_LOGGER = logging.getLogger("QuickPane.Overlay")


class Visibility(str, Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"


class OverlaySurface(Protocol):
    def show(self) -> None:
        ...

    def hide(self) -> None:
        ...

    def set_focus(self) -> None:
        ...

    def is_visible(self) -> bool:
        ...


class OverlayError(RuntimeError):
    """The overlay surface rejected a show/hide/focus/visibility request."""

    def __init__(self, action: str, cause: BaseException) -> None:
        super().__init__(f"Failed to {action} window: {cause}")
        self.action = action
        self.cause = cause


class FocusSlot:
    """Single cell holding the previous focus holder; ``None`` is the sentinel."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pid: Optional[int] = None

    def load(self) -> Optional[int]:
        with self._lock:
            return self._pid

    def capture(self, pid: Optional[int]) -> None:
        if pid is not None and pid <= 0:
            pid = None
        with self._lock:
            self._pid = pid

    def consume(self) -> Optional[int]:
        with self._lock:
            pid, self._pid = self._pid, None
        return pid


class OverlayLifecycle:
    """Two-state visibility controller for one overlay surface.

    All four transitions share one re-entrant lock, so ``toggle`` reads the
    visibility and acts on it without another call slipping in between.
    """

    def __init__(
        self,
        surface: OverlaySurface,
        focus_tracker: Optional[FocusTracker] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._surface = surface
        self._focus = focus_tracker or NullFocusTracker()
        self._slot = FocusSlot()
        self._lock = threading.RLock()
        self._logger = logger or _LOGGER

    @property
    def previous_focus_holder(self) -> Optional[int]:
        return self._slot.load()

    def visibility(self) -> Visibility:
        with self._lock:
            return Visibility.VISIBLE if self._is_visible() else Visibility.HIDDEN

    def show(self) -> None:
        with self._lock:
            self._logger.info("Showing quick pane window")
            if not self._is_visible():
                self._capture_focus_holder()
                self._call("show", self._surface.show)
            self._call("focus", self._surface.set_focus)
            self._logger.debug("Quick pane window shown")

    def hide(self) -> None:
        with self._lock:
            self._logger.info("Hiding quick pane window")
            self._call("hide", self._surface.hide)
            self._logger.debug("Quick pane window hidden")

    def dismiss(self) -> None:
        with self._lock:
            self._logger.info("Dismissing quick pane window")
            self._call("hide", self._surface.hide)
            self._restore_focus_holder()

    def toggle(self) -> Visibility:
        with self._lock:
            self._logger.info("Toggling quick pane window")
            if self._is_visible():
                self.dismiss()
                return Visibility.HIDDEN
            self.show()
            return Visibility.VISIBLE

    # Internal helpers -------------------------------------------------

    def _is_visible(self) -> bool:
        return bool(self._call("check visibility of", self._surface.is_visible))

    def _call(self, action: str, func: Callable[[], object]) -> object:
        try:
            return func()
        except Exception as exc:
            self._logger.error("Failed to %s quick pane window: %s", action, exc)
            raise OverlayError(action, exc) from exc

    def _capture_focus_holder(self) -> None:
        try:
            pid = self._focus.foreground_process_id()
        except Exception as exc:
            self._logger.debug("Foreground process query failed: %s", exc)
            pid = None
        self._slot.capture(pid)
        if self._slot.load() is not None:
            self._logger.debug("Captured previous app PID: %s", pid)

    def _restore_focus_holder(self) -> None:
        pid = self._slot.consume()
        if pid is None:
            return
        try:
            activated = self._focus.reactivate_process(pid)
        except Exception as exc:
            self._logger.debug("Previous app (PID: %s) could not be reactivated: %s", pid, exc)
            return
        if activated:
            self._logger.debug("Reactivated previous app (PID: %s)", pid)
        else:
            self._logger.debug("Previous app (PID: %s) no longer running", pid)
