"""
Logging helpers.

All modules obtain their logger through ``get_logger(__name__)`` so that
every logger lives under the ``flowcyto`` namespace and can be configured
in one place with ``setup_logging``.
"""

import logging
from typing import Optional, Union

from ..config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER_NAME = "flowcyto"


def setup_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Configure the package root logger.

    Args:
        level: Logging level (name or number). Defaults to the configured
            ``FLOWCYTO_LOG_LEVEL``.

    Returns:
        The configured ``flowcyto`` logger.
    """
    if level is None:
        level = config.log_level
    if isinstance(level, str):
        level = level.upper()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    if not any(getattr(h, "_flowcyto_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._flowcyto_handler = True
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name*, nested under the ``flowcyto`` namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
