from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from quickpane_host.settings import CoreSettings

LOGGER_NAME = "QuickPane"
LOG_TAG = "QuickPane"
LOG_FILENAME = "quickpane.log"
DEFAULT_LOG_LEVEL = logging.INFO

_LEVEL_NAME_MAP = {
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": logging.DEBUG,
}


def build_rotating_file_handler(
    log_dir: Path,
    filename: str,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def coerce_level(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        token = raw.strip().upper()
        if token.isdigit():
            return int(token)
        return _LEVEL_NAME_MAP.get(token)
    return None


def resolve_log_level(debug_enabled: bool, override: Any = None) -> int:
    """An explicit level wins; otherwise DEBUG when debugging, INFO if not."""
    level = coerce_level(override)
    if level is not None and level != logging.NOTSET:
        return level
    return logging.DEBUG if debug_enabled else DEFAULT_LOG_LEVEL


def configure_logging(settings: "CoreSettings", *, stream: Any = None) -> logging.Logger:
    """Attach file and stream handlers to the QuickPane logger once."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_log_level(settings.debug, settings.log_level))
    formatter = logging.Formatter(
        f"[%(asctime)s] [{LOG_TAG}] %(levelname)s %(name)s: %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )
    if not any(getattr(handler, "_quickpane_stream", False) for handler in logger.handlers):
        stream_handler = logging.StreamHandler(stream or sys.stderr)
        stream_handler._quickpane_stream = True  # type: ignore[attr-defined]
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
    if not any(getattr(handler, "_quickpane_file", False) for handler in logger.handlers):
        try:
            file_handler = build_rotating_file_handler(settings.log_dir, LOG_FILENAME, formatter=formatter)
        except OSError as exc:
            logger.warning("File logging unavailable in %s: %s", settings.log_dir, exc)
        else:
            file_handler._quickpane_file = True  # type: ignore[attr-defined]
            logger.addHandler(file_handler)
    logger.propagate = False
    return logger
