# earnings/core/log_config.py
from __future__ import annotations

import logging

from earnings.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Root logger setup; safe to call more than once."""
    lvl = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    logging.getLogger("earnings").setLevel(lvl)
