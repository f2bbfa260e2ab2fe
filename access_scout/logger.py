"""Site-wide logging configuration for the **AccessScout** project.

Highlights
----------
* Unified format for console and optional file output (with rotation).
* Single, importable instance :data:`logger` - simply::

      from access_scout.logger import logger
      logger.info("Crawl started")
* Re-configurable at runtime via :func:`configure`.
* :func:`module_logger` hands analyzer modules an adapter that prefixes
  every record with the producing module and the page URL.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, MutableMapping, Tuple, Union

# --------------------------------------------------------------------------- #
# Constants & basic types                                                     #
# --------------------------------------------------------------------------- #

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "AccessScout"

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Helper builders                                                             #
# --------------------------------------------------------------------------- #


def _stdout_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _file_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=str(file),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the global project logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile. *None* -> console-only output.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* - remove existing handlers; *False* - just append new one(s).
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        lg.handlers.clear()

    lg.addHandler(_stdout_handler(log_format))

    if log_file is not None:
        lg.addHandler(_file_handler(log_file, log_format))

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replace handlers and apply *level*."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


class PageLoggerAdapter(logging.LoggerAdapter):
    """Prefix records with ``[module] url`` so analyzer logs stay attributable."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        module = extra.get("module", "-")
        url = extra.get("url", "-")
        return f"[{module}] {url} | {msg}", kwargs


def module_logger(module: str, url: str) -> PageLoggerAdapter:
    """Return a child adapter of the project logger bound to *module* and *url*."""
    return PageLoggerAdapter(logging.getLogger(_LOGGER_NAME), {"module": module, "url": url})


# --------------------------------------------------------------------------- #
# Ready-to-use instance                                                       #
# --------------------------------------------------------------------------- #

logger: logging.Logger = logging.getLogger(_LOGGER_NAME)

__all__ = ["logger", "configure", "init_logging", "module_logger", "PageLoggerAdapter"]
