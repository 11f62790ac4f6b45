"""Cross-platform helpers for querying and restoring the foreground process."""
from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Any, List, Mapping, Optional, Protocol

_LOGGER = logging.getLogger("QuickPane.Overlay.Focus")
_SUBPROCESS_TIMEOUT = 1.0


class FocusTracker(Protocol):
    """Optional capability: who holds focus now, and hand it back later."""

    def foreground_process_id(self) -> Optional[int]:
        ...

    def reactivate_process(self, pid: int) -> bool:
        ...


class NullFocusTracker:
    """Used where the platform offers no focus query; show/dismiss still work."""

    def foreground_process_id(self) -> Optional[int]:
        return None

    def reactivate_process(self, pid: int) -> bool:
        return False


def create_focus_tracker(
    logger: Optional[logging.Logger] = None,
    *,
    enabled: bool = True,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> FocusTracker:
    """Instantiate the focus tracker for the running platform."""

    log = logger or _LOGGER
    if not enabled:
        log.info("Focus tracking disabled; overlay dismissal will not restore focus")
        return NullFocusTracker()
    platform = platform or sys.platform
    env = os.environ if env is None else env
    if platform.startswith("win"):
        try:
            return _WindowsFocusTracker(log)
        except Exception as exc:  # pragma: no cover
            log.warning("Windows focus tracker unavailable: %s", exc)
            return NullFocusTracker()
    if platform == "darwin":
        return _MacFocusTracker(log)
    if platform.startswith("linux"):
        session = (env.get("XDG_SESSION_TYPE") or "").lower()
        if session == "wayland" and not env.get("DISPLAY"):
            log.info("Wayland session without X fallback; focus restoration disabled")
            return NullFocusTracker()
        return _X11FocusTracker(log)

    log.info("Focus tracking not implemented for platform '%s'; focus restoration disabled", platform)
    return NullFocusTracker()


class _CommandFocusTracker:
    """Shared plumbing for trackers that shell out to a helper binary."""

    binary = ""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger
        self._missing = False

    def _run(self, args: List[str]) -> Optional[str]:
        if self._missing:
            return None
        try:
            result = subprocess.run(
                [self.binary, *args],
                check=False,
                capture_output=True,
                text=True,
                timeout=_SUBPROCESS_TIMEOUT,
            )
        except FileNotFoundError:
            self._missing = True
            self._logger.warning("%s binary not found; focus restoration disabled", self.binary)
            return None
        except subprocess.SubprocessError as exc:
            self._logger.debug("%s invocation failed: %s", self.binary, exc)
            return None
        if result.returncode != 0:
            self._logger.debug("%s %s returned non-zero status: %s", self.binary, args[0], result.returncode)
            return None
        return result.stdout


def _parse_pid(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        pid = int(raw.strip())
    except ValueError:
        return None
    return pid if pid > 0 else None


class _X11FocusTracker(_CommandFocusTracker):
    """Use xdotool to read and restore the active X11 window's owner."""

    binary = "xdotool"

    def foreground_process_id(self) -> Optional[int]:
        return _parse_pid(self._run(["getactivewindow", "getwindowpid"]))

    def reactivate_process(self, pid: int) -> bool:
        output = self._run(["search", "--onlyvisible", "--pid", str(pid)])
        if not output:
            self._logger.debug("No visible window found for pid %s", pid)
            return False
        window_ids = [line.strip() for line in output.splitlines() if line.strip()]
        if not window_ids:
            return False
        return self._run(["windowactivate", window_ids[0]]) is not None


class _MacFocusTracker(_CommandFocusTracker):
    """Query System Events through osascript for the frontmost application."""

    binary = "osascript"

    def foreground_process_id(self) -> Optional[int]:
        script = 'tell application "System Events" to get unix id of first application process whose frontmost is true'
        return _parse_pid(self._run(["-e", script]))

    def reactivate_process(self, pid: int) -> bool:
        script = (
            'tell application "System Events" to set frontmost of '
            f"(first application process whose unix id is {int(pid)}) to true"
        )
        return self._run(["-e", script]) is not None


ctypes: Any
wintypes: Any
try:
    import ctypes as _ctypes
    from ctypes import wintypes as _wintypes

    ctypes = _ctypes
    wintypes = _wintypes
except Exception:  # pragma: no cover - ctypes missing from the interpreter
    ctypes = None
    wintypes = None

_SW_RESTORE = 9


class _WindowsFocusTracker:
    """Resolve and restore the foreground process using Win32 APIs."""

    def __init__(self, logger: logging.Logger) -> None:
        if ctypes is None or wintypes is None:
            raise RuntimeError("ctypes is unavailable; cannot create Windows focus tracker")
        self._logger = logger
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._match_pid = 0
        self._match_hwnd: Optional[int] = None
        self._enum_proc = ctypes.WINFUNCTYPE(ctypes.c_bool, wintypes.HWND, wintypes.LPARAM)(self._enum_windows)

    def foreground_process_id(self) -> Optional[int]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None
        return self._pid_for_window(hwnd)

    def reactivate_process(self, pid: int) -> bool:
        hwnd = self._find_window_for_pid(pid)
        if hwnd is None:
            self._logger.debug("No visible window found for pid %s", pid)
            return False
        if self._user32.IsIconic(hwnd):
            self._user32.ShowWindow(hwnd, _SW_RESTORE)
        return bool(self._user32.SetForegroundWindow(hwnd))

    # Internal helpers -------------------------------------------------

    def _pid_for_window(self, hwnd: int) -> Optional[int]:
        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        return int(pid.value) or None

    def _find_window_for_pid(self, pid: int) -> Optional[int]:
        self._match_pid = int(pid)
        self._match_hwnd = None
        self._user32.EnumWindows(self._enum_proc, 0)
        return self._match_hwnd

    def _enum_windows(self, hwnd: int, _: int) -> bool:
        if not self._user32.IsWindowVisible(hwnd):
            return True
        if self._pid_for_window(hwnd) == self._match_pid:
            self._match_hwnd = hwnd
            return False
        return True
