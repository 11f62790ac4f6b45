"""Input validators applied before any disk mutation."""
from __future__ import annotations

import re
from enum import Enum
from typing import Any

from quickpane_store.errors import ValidationError

MAX_FILENAME_LENGTH = 100
_FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(\.[A-Za-z0-9]+)?$")


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


def validate_filename(name: Any) -> str:
    """Check a recovery key against the structural allow-list.

    The pattern admits no separators and no ``..`` so the key can be joined
    onto the recovery directory as-is.
    """

    if not isinstance(name, str):
        raise ValidationError("Filename must be a string")
    if not name:
        raise ValidationError("Filename cannot be empty")
    if len(name) > MAX_FILENAME_LENGTH:
        raise ValidationError(f"Filename too long (max {MAX_FILENAME_LENGTH} characters)")
    # fullmatch so a trailing newline cannot slip past ``$``
    if _FILENAME_PATTERN.fullmatch(name) is None:
        raise ValidationError(
            "Invalid filename: only alphanumeric characters, dashes, underscores, and dots allowed"
        )
    return name


def validate_theme(value: Any) -> Theme:
    if isinstance(value, Theme):
        return value
    if isinstance(value, str):
        for theme in Theme:
            if value == theme.value:
                return theme
    raise ValidationError("Invalid theme: must be 'light', 'dark', or 'system'")


def validate_string_input(value: str, max_len: int, field_name: str) -> str:
    if len(value) > max_len:
        raise ValidationError(f"{field_name} too long (max {max_len} characters)")
    return value
