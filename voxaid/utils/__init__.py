"""Utility functions for VoxAid.

The ``logging_system`` module provides the configurable logger factory and
the in-memory log buffer used by the HTTP control API.
"""

from .logging_system import LogBuffer, attach_log_buffer, get_logger, setup_log_system  # noqa: F401

__all__ = ["LogBuffer", "attach_log_buffer", "get_logger", "setup_log_system"]
