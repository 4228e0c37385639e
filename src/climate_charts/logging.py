from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "CLIMATE_CHARTS_LOG_LEVEL"

# Third-party loggers that flood DEBUG output while previews render.
NOISY_LOGGERS = ("matplotlib", "PIL")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for scripts; library modules only log."""
    level = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.getLogger().level, logging.WARNING))
