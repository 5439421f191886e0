# app/core/logging_config.py
# Logging setup for the API process.
# Modules log through named loggers: logging.getLogger("freetutor.<area>")

import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Attach a single stdout handler to the 'freetutor' logger tree."""
    root = logging.getLogger("freetutor")
    root.setLevel((level or settings.log_level).upper())

    if not any(getattr(h, "_freetutor", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._freetutor = True
        root.addHandler(handler)

    # Keep SQL echo out of the app log unless explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
