"""Utility modules for gitit."""

from .console import console
from .http import auth_headers, normalize_headers
from .log import configure_logging

__all__ = ["console", "auth_headers", "normalize_headers", "configure_logging"]
