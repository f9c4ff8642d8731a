"""
Logging setup driven by telecart.config.Settings.

Modules grab a logger at import time with ``get_logger(__name__)``; the
application factory calls ``configure_logging(settings)`` once the settings
are known. Reconfiguring updates the installed handler in place.
"""

import logging
import sys
from functools import cache
from typing import Optional

from telecart.config import Settings, get_settings

_DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_COMPACT_FORMAT = "%(levelname)s - %(name)s - %(message)s"

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

# Control characters that could forge log lines (CWE-117)
_UNSAFE_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})

_ID_PREVIEW_LENGTH = 8


class _ServiceHandler(logging.StreamHandler):
    """Marker type so the root handler can be found and reused."""


def _find_handler(root: logging.Logger) -> Optional[_ServiceHandler]:
    return next((h for h in root.handlers if isinstance(h, _ServiceHandler)), None)


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Apply level and format from settings to the root logger.

    Production uses the compact format; other environments add timestamps.
    Safe to call repeatedly: exactly one service handler is kept.

    Returns:
        The root logger
    """
    if settings is None:
        settings = get_settings()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    handler = _find_handler(root)
    if handler is None:
        handler = _ServiceHandler(sys.stdout)
        root.addHandler(handler)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_COMPACT_FORMAT if settings.is_production else _DETAILED_FORMAT))
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


@cache
def get_logger(name: str) -> logging.Logger:
    """Named logger (typically ``__name__``), cached per name."""
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: Optional[str]) -> str:
    """Escape control characters and keep a short prefix of a caller-supplied id."""
    if not id_value:
        return "N/A"
    return str(id_value).translate(_UNSAFE_CHARS)[:_ID_PREVIEW_LENGTH]


__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
]
