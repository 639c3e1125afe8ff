# src/config/logging_config.py

"""Logging for a single monitor pass.

Every invocation of ``stock_monitor`` is one pass over the sitemap, so
each pass gets its own file, ``<LOGS_DIR>/run_<YYYYmmdd_HHMMSS>.log``
(``LOGS_DIR`` defaults to ``logs/`` beside the project).

Loggers hang off one ``stock_monitor`` root, one child per stage:

* ``stock_monitor.feed``: sitemap download and URL filtering
* ``stock_monitor.<source>``: product page scraping
* ``stock_monitor.reconciler``: per-URL outcome and detected changes
* ``stock_monitor.store``: SQLite writes and failures
* ``stock_monitor.notifier``: Discord delivery
* ``stock_monitor.orchestrator`` / ``.cli`` / ``.main``: run bracketing

The file receives DEBUG with source locations; stderr receives INFO,
which is the ``[i/n]`` progress line plus one outcome per product.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER_NAME = "stock_monitor"


def _handler(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the run file and stderr handlers to ``stock_monitor``.

    Calling it again in the same process adds no handlers; the path
    returned then names a file that was never opened.

    Args:
        logs_dir: Directory for the run log. Defaults to
            ``Settings.LOGS_DIR``.

    Returns:
        Path of this pass's log file.
    """
    logs_dir = logs_dir or Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    if root_logger.handlers:
        return log_file

    root_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    root_logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            logging.INFO,
            _CONSOLE_FORMAT,
        )
    )
    root_logger.debug("Run log opened at %s", log_file)
    return log_file
