"""PyQt6 adapter exposing a widget as an overlay surface.

PyQt6 is imported lazily; only :func:`create_quick_pane_widget` needs it.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from PyQt6.QtWidgets import QWidget


class QtOverlaySurface:
    def __init__(self, widget: "QWidget") -> None:
        self._widget = widget

    @property
    def widget(self) -> "QWidget":
        return self._widget

    def show(self) -> None:
        self._widget.show()

    def hide(self) -> None:
        self._widget.hide()

    def set_focus(self) -> None:
        self._widget.raise_()
        self._widget.activateWindow()

    def is_visible(self) -> bool:
        return bool(self._widget.isVisible())


def create_quick_pane_widget(title: str = "Quick Entry", width: int = 500, height: int = 72) -> "QWidget":
    """Build a frameless, always-on-top, hidden widget suitable for the pane.

    Requires a ``QApplication`` to exist already.
    """

    from PyQt6.QtCore import Qt
    from PyQt6.QtWidgets import QWidget

    widget = QWidget()
    widget.setWindowTitle(title)
    widget.setWindowFlags(
        Qt.WindowType.FramelessWindowHint
        | Qt.WindowType.WindowStaysOnTopHint
        | Qt.WindowType.Tool
    )
    widget.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
    widget.setFixedSize(width, height)
    widget.hide()
    return widget
