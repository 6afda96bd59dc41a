"""
Logger configuration.

Logs go to stderr; stdout is reserved for the pipeline's own output.
"""

import logging
import sys


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with an ISO timestamp format."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # requests is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Args:
        name: Logger name (usually __name__)
    """
    return logging.getLogger(name)
