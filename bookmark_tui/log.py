"""Package logger.

Textual owns the terminal, so log records go to a file under the app home
instead of stderr.  Modules import ``logger`` from here rather than calling
``logging.getLogger`` themselves.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

logger = logging.getLogger("bookmark_tui")

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(path: Path | None = None, *, debug: bool = False) -> Path | None:
    """Attach a rotating file handler to the package logger.

    Returns the log file path, or None if the file could not be opened
    (logging then stays a no-op rather than failing the app).
    """
    from .platform import app_file

    path = path or app_file("bookmark-tui.log")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            logger.removeHandler(handler)
            handler.close()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            path, maxBytes=1_000_000, backupCount=2, encoding="utf-8"
        )
    except OSError:
        logger.addHandler(logging.NullHandler())
        return None
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return path
