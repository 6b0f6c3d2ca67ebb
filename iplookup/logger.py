import os
from logging import config, getLevelName, getLogger

LOGGER_NAME = "iplookup"
LOG_LEVEL = getLevelName(os.getenv("LOG_LEVEL", "WARNING").upper())  # DEBUG, INFO, ERROR

log_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(levelname)-8s %(asctime)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        # Rendered results go to stdout, so diagnostics stay on stderr.
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        LOGGER_NAME: {"handlers": ["default"], "level": LOG_LEVEL, "propagate": False},
        "httpx": {"handlers": ["default"], "level": "WARNING", "propagate": False},
    },
}

config.dictConfig(log_config)

logger = getLogger(LOGGER_NAME)


def set_log_level(level: str) -> None:
    """Change the level of the iplookup logger (used by --verbose)."""
    logger.setLevel(level.upper())
