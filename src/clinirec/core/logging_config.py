"""clinirec - Logging Configuration.

Console logging with configurable levels for development and production.
Credentials and bearer tokens are never passed to the logger.
"""

import logging
import logging.config
import sys
from typing import Any

from clinirec.core.config import Settings, get_settings

# Track if logging has been configured
_logging_configured = False


def setup_logging(settings: Settings | None = None, force: bool = False) -> None:
    """Configure logging for the client based on settings.

    Args:
        settings: Settings to read levels from, defaults to ``get_settings()``.
        force: If True, force reconfiguration even if already configured.
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    settings = settings or get_settings()
    level = settings.log_level.upper()

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": (
                    "detailed"
                    if settings.debug or settings.is_development()
                    else "simple"
                ),
                "stream": sys.stderr,
            },
        },
        "loggers": {
            "clinirec": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

    logging.config.dictConfig(logging_config)
    _logging_configured = True

    logger = logging.getLogger(__name__)
    logger.debug(
        "Logging configured for %s environment with level %s",
        settings.environment,
        level,
    )
