from __future__ import annotations

import threading
from typing import List, Optional

import pytest

from quickpane_overlay.focus_tracking import NullFocusTracker
from quickpane_overlay.lifecycle import FocusSlot, OverlayError, OverlayLifecycle, Visibility


class _FakeSurface:
    def __init__(self, visible: bool = False) -> None:
        self.visible = visible
        self.calls: List[str] = []
        self.fail_on: Optional[str] = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    def show(self) -> None:
        self._record("show")
        self.visible = True

    def hide(self) -> None:
        self._record("hide")
        self.visible = False

    def set_focus(self) -> None:
        self._record("set_focus")

    def is_visible(self) -> bool:
        self._record("is_visible")
        return self.visible


class _FakeFocusTracker:
    def __init__(self, foreground: Optional[int] = None, reactivate_result: bool = True) -> None:
        self.foreground = foreground
        self.reactivate_result = reactivate_result
        self.reactivated: List[int] = []
        self.queries = 0

    def foreground_process_id(self) -> Optional[int]:
        self.queries += 1
        return self.foreground

    def reactivate_process(self, pid: int) -> bool:
        self.reactivated.append(pid)
        return self.reactivate_result


def test_focus_slot_capture_and_consume():
    slot = FocusSlot()
    assert slot.consume() is None

    slot.capture(4242)
    assert slot.load() == 4242
    assert slot.consume() == 4242
    assert slot.load() is None

    slot.capture(-1)
    assert slot.load() is None


def test_show_then_dismiss_restores_previous_foreground_process():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=1234)
    lifecycle = OverlayLifecycle(surface, focus)

    lifecycle.show()
    assert surface.visible
    assert lifecycle.previous_focus_holder == 1234
    assert surface.calls[-2:] == ["show", "set_focus"]

    focus.foreground = 999  # the pane now owns focus
    lifecycle.dismiss()

    assert not surface.visible
    assert focus.reactivated == [1234]
    assert lifecycle.previous_focus_holder is None


def test_show_while_visible_refocuses_without_recapturing():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=10)
    lifecycle = OverlayLifecycle(surface, focus)
    lifecycle.show()
    focus.foreground = 20

    lifecycle.show()

    assert lifecycle.previous_focus_holder == 10
    assert focus.queries == 1
    assert surface.calls.count("show") == 1
    assert surface.calls.count("set_focus") == 2


def test_hide_keeps_previous_focus_holder():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=77)
    lifecycle = OverlayLifecycle(surface, focus)
    lifecycle.show()

    lifecycle.hide()

    assert not surface.visible
    assert lifecycle.previous_focus_holder == 77
    assert focus.reactivated == []


def test_dismiss_clears_slot_even_when_reactivation_fails():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=55, reactivate_result=False)
    lifecycle = OverlayLifecycle(surface, focus)
    lifecycle.show()

    lifecycle.dismiss()
    lifecycle.dismiss()

    assert focus.reactivated == [55]
    assert lifecycle.previous_focus_holder is None


def test_dismiss_tolerates_tracker_exceptions():
    class _ExplodingTracker(_FakeFocusTracker):
        def reactivate_process(self, pid: int) -> bool:
            raise OSError("process exited")

    surface = _FakeSurface()
    lifecycle = OverlayLifecycle(surface, _ExplodingTracker(foreground=8))
    lifecycle.show()

    lifecycle.dismiss()

    assert lifecycle.previous_focus_holder is None
    assert not surface.visible


def test_show_without_foreground_process_leaves_sentinel():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=None)
    lifecycle = OverlayLifecycle(surface, focus)

    lifecycle.show()
    lifecycle.dismiss()

    assert surface.calls.count("show") == 1
    assert focus.reactivated == []


def test_null_tracker_degrades_to_plain_visibility():
    surface = _FakeSurface()
    lifecycle = OverlayLifecycle(surface, NullFocusTracker())

    assert lifecycle.toggle() is Visibility.VISIBLE
    assert lifecycle.toggle() is Visibility.HIDDEN
    assert lifecycle.previous_focus_holder is None


def test_toggle_from_hidden_matches_show():
    toggled_surface, shown_surface = _FakeSurface(), _FakeSurface()
    toggled_focus, shown_focus = _FakeFocusTracker(foreground=3), _FakeFocusTracker(foreground=3)
    toggled = OverlayLifecycle(toggled_surface, toggled_focus)
    shown = OverlayLifecycle(shown_surface, shown_focus)

    assert toggled.toggle() is Visibility.VISIBLE
    shown.show()

    assert toggled_surface.visible and shown_surface.visible
    assert toggled.previous_focus_holder == shown.previous_focus_holder == 3
    assert [c for c in toggled_surface.calls if c != "is_visible"] == [
        c for c in shown_surface.calls if c != "is_visible"
    ]


def test_toggle_from_visible_matches_dismiss():
    toggled_surface, dismissed_surface = _FakeSurface(), _FakeSurface()
    toggled_focus, dismissed_focus = _FakeFocusTracker(foreground=6), _FakeFocusTracker(foreground=6)
    toggled = OverlayLifecycle(toggled_surface, toggled_focus)
    dismissed = OverlayLifecycle(dismissed_surface, dismissed_focus)
    toggled.show()
    dismissed.show()

    assert toggled.toggle() is Visibility.HIDDEN
    dismissed.dismiss()

    assert not toggled_surface.visible and not dismissed_surface.visible
    assert toggled_focus.reactivated == dismissed_focus.reactivated == [6]
    assert toggled.previous_focus_holder is None and dismissed.previous_focus_holder is None


def test_visibility_is_read_live_from_surface():
    surface = _FakeSurface()
    lifecycle = OverlayLifecycle(surface)
    assert lifecycle.visibility() is Visibility.HIDDEN

    surface.visible = True  # changed behind the lifecycle's back
    assert lifecycle.visibility() is Visibility.VISIBLE
    assert lifecycle.toggle() is Visibility.HIDDEN


@pytest.mark.parametrize("failing", ["show", "set_focus", "is_visible"])
def test_surface_failures_are_wrapped(failing):
    surface = _FakeSurface()
    surface.fail_on = failing
    lifecycle = OverlayLifecycle(surface, _FakeFocusTracker(foreground=1))

    with pytest.raises(OverlayError) as excinfo:
        lifecycle.show()

    assert isinstance(excinfo.value.cause, RuntimeError)


def test_hide_failure_during_dismiss_keeps_holder_for_retry():
    surface = _FakeSurface()
    focus = _FakeFocusTracker(foreground=9)
    lifecycle = OverlayLifecycle(surface, focus)
    lifecycle.show()
    surface.fail_on = "hide"

    with pytest.raises(OverlayError):
        lifecycle.dismiss()

    assert focus.reactivated == []
    assert lifecycle.previous_focus_holder == 9


def test_concurrent_toggles_do_not_interleave():
    class _SlowSurface(_FakeSurface):
        def __init__(self) -> None:
            super().__init__()
            self.active = 0
            self.overlap = False
            self._guard = threading.Lock()

        def is_visible(self) -> bool:
            with self._guard:
                self.active += 1
                if self.active > 1:
                    self.overlap = True
            try:
                threading.Event().wait(0.001)
                return super().is_visible()
            finally:
                with self._guard:
                    self.active -= 1

    surface = _SlowSurface()
    lifecycle = OverlayLifecycle(surface, _FakeFocusTracker(foreground=5))
    threads = [threading.Thread(target=lifecycle.toggle) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not surface.overlap
    # ten toggles from hidden end hidden
    assert surface.visible is False
