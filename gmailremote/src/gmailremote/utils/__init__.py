"""Shared helpers: structured logging.

Interfaces:
  ``JsonLogger`` and ``get_logger``.
"""

from .logging import JsonLogger, get_logger

__all__ = ["JsonLogger", "get_logger"]
