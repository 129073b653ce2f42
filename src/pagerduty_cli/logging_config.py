"""Logging setup: stdlib logging rendered on stderr through Rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "pagerduty_cli"

err_console = Console(stderr=True)


def level_from_flags(verbose: int, warn: bool, quiet: bool) -> int:
    """Pick a log level: ``-q`` beats ``-w`` beats ``-v``."""
    if quiet:
        return logging.ERROR
    if warn:
        return logging.WARNING
    if verbose == 0:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbose: int = 0, warn: bool = False, quiet: bool = False) -> None:
    """Attach a single Rich handler to the package logger.

    Safe to call more than once; earlier handlers are replaced. With two or
    more ``-v`` the HTTP libraries log at DEBUG as well.
    """
    level = level_from_flags(verbose, warn, quiet)

    handler = RichHandler(console=err_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    _install(logging.getLogger(LOGGER_NAME), handler, level)

    http_level = logging.DEBUG if level == logging.DEBUG and verbose >= 2 else logging.WARNING
    for name in ("requests", "urllib3"):
        _install(logging.getLogger(name), handler, http_level)


def _install(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
