"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from .console import console


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Route gitit's loggers through rich and return the package logger."""
    logger = logging.getLogger("gitit")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console,
            show_path=verbose,
            show_time=verbose,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger
