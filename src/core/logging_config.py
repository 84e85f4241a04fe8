"""Logging setup for the API server and the management CLI."""

import logging.config

from config import LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure a single console handler for the root logger.

    Args:
        level: Logging level name, e.g. "INFO" or "DEBUG".
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                # SQL echo is far too chatty at INFO
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
