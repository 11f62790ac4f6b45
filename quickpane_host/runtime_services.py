from __future__ import annotations

import logging
from typing import Mapping, Optional

from quickpane_overlay.focus_tracking import FocusTracker
from quickpane_overlay.lifecycle import OverlaySurface

from quickpane_host.commands import CommandHost, build_command_host
from quickpane_host.logging_utils import configure_logging
from quickpane_host.settings import CoreSettings


def start_core_services(
    surface: Optional[OverlaySurface] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    focus_tracker: Optional[FocusTracker] = None,
    background_store: bool = True,
    sweep_on_start: bool = True,
) -> CommandHost:
    """Resolve settings, configure logging and wire the command host.

    A failure to resolve the application-data directory propagates as
    ``StoreIOError``; the host decides whether to abort.
    """
    settings = CoreSettings.from_env(env=env)
    logger = configure_logging(settings)
    logger.info("QuickPane core starting; data dir %s", settings.data_dir)
    host = build_command_host(
        settings,
        surface,
        focus_tracker,
        background_store=background_store,
        logger=logging.getLogger("QuickPane.Host.Commands"),
    )
    if sweep_on_start:
        result = host.cleanup_old_recovery_files()
        if not result.ok:
            logger.warning("Startup recovery cleanup failed: %s", result.error)
    return host


def stop_core_services(host: CommandHost, logger: Optional[logging.Logger] = None) -> None:
    log = logger or logging.getLogger("QuickPane.Host")
    host.shutdown()
    log.debug("QuickPane core stopped")
