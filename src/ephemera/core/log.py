"""Logging setup shared by the app and the command line tools."""

from __future__ import annotations

import logging

from ephemera.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once, honouring ``LOG_LEVEL``."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
