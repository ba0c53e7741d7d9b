"""
Logging setup

Configures the ``app`` logger tree once at startup. Modules log through
``logging.getLogger(__name__)``.
"""

import logging
import sys

_configured = False


def setup_logging(level: str = "INFO", fmt: str = "text") -> logging.Logger:
    """
    Configure logging for the API.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        fmt: "text" for human-readable lines, "json" for one JSON object per line

    Returns:
        The configured ``app`` logger
    """
    global _configured

    logger = logging.getLogger("app")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if _configured:
        return logger

    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)

    if fmt == "json":
        from pythonjsonlogger import jsonlogger
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Quiet noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    _configured = True
    return logger
