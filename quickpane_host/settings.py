"""Runtime settings resolved from environment overrides and platform paths."""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from quickpane_store.errors import StoreIOError
from quickpane_store.recovery import MAX_RECOVERY_DATA_BYTES, RECOVERY_MAX_AGE_SECONDS

APP_NAME = "QuickPane"
ENV_PREFIX = "QUICKPANE_"

_LOGGER = logging.getLogger("QuickPane.Host")
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _platform_data_candidates(app_name: str, env: Mapping[str, str], platform: str) -> list[Path]:
    home = Path.home()
    if platform.startswith("win"):
        candidates = []
        for var in ("APPDATA", "LOCALAPPDATA"):
            value = env.get(var)
            if value:
                candidates.append(Path(value) / app_name)
        candidates.append(home / "AppData" / "Roaming" / app_name)
        return candidates
    if platform == "darwin":
        return [home / "Library" / "Application Support" / app_name]
    data_home = env.get("XDG_DATA_HOME")
    base = Path(data_home) if data_home else home / ".local" / "share"
    return [base / app_name]


def resolve_app_data_dir(
    app_name: str = APP_NAME,
    env: Optional[Mapping[str, str]] = None,
    *,
    platform: Optional[str] = None,
) -> Path:
    """
    Resolve (and create) the directory for persistent application data.

    Strategy:
    - Use QUICKPANE_DATA_DIR if set.
    - Otherwise the platform convention: %APPDATA% on Windows,
      ~/Library/Application Support on macOS, $XDG_DATA_HOME (or
      ~/.local/share) elsewhere.
    Raises StoreIOError when no candidate can be created.
    """
    env = os.environ if env is None else env
    platform = platform or sys.platform
    candidates: list[Path] = []
    override = env.get(f"{ENV_PREFIX}DATA_DIR")
    if override:
        candidates.append(Path(override).expanduser())
    candidates.extend(_platform_data_candidates(app_name, env, platform))

    errors = []
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            return candidate
        except OSError as exc:
            _LOGGER.debug("App data candidate %s unusable: %s", candidate, exc)
            errors.append(f"{candidate}: {exc}")
    raise StoreIOError("Failed to get app data directory: " + "; ".join(errors))


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None:
        return default
    token = raw.strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    _LOGGER.debug("Ignoring unrecognised %s%s value %r", ENV_PREFIX, name, raw)
    return default


def _env_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        _LOGGER.debug("Ignoring non-numeric %s%s value %r", ENV_PREFIX, name, raw)
        return default
    if value <= 0:
        _LOGGER.debug("Ignoring non-positive %s%s value %r", ENV_PREFIX, name, raw)
        return default
    return value


@dataclass(frozen=True)
class CoreSettings:
    data_dir: Path
    log_dir: Path
    debug: bool = False
    log_level: Optional[str] = None
    recovery_max_age_seconds: int = RECOVERY_MAX_AGE_SECONDS
    recovery_max_bytes: int = MAX_RECOVERY_DATA_BYTES
    focus_tracking: bool = True

    @classmethod
    def from_env(
        cls,
        app_name: str = APP_NAME,
        env: Optional[Mapping[str, str]] = None,
        *,
        platform: Optional[str] = None,
    ) -> "CoreSettings":
        env = os.environ if env is None else env
        data_dir = resolve_app_data_dir(app_name, env, platform=platform)
        log_override = env.get(f"{ENV_PREFIX}LOG_DIR")
        log_dir = Path(log_override).expanduser() if log_override else data_dir / "logs"
        level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
        return cls(
            data_dir=data_dir,
            log_dir=log_dir,
            debug=_env_flag(env, "DEBUG", False),
            log_level=level.strip() if level and level.strip() else None,
            recovery_max_age_seconds=_env_positive_int(env, "RECOVERY_MAX_AGE", RECOVERY_MAX_AGE_SECONDS),
            recovery_max_bytes=_env_positive_int(env, "RECOVERY_MAX_BYTES", MAX_RECOVERY_DATA_BYTES),
            focus_tracking=_env_flag(env, "FOCUS_TRACKING", True),
        )
