"""
Console logging for the pfa_geometry loggers.

The library itself only logs through module-level loggers under
``pfa_geometry``. Applications that want to see geometry set-up messages
call configure() once; the root logger is left alone.
"""

import logging
import os

PACKAGE_LOGGER = "pfa_geometry"
LOG_LEVEL_ENV = "PFA_GEOMETRY_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def _resolve_level(level):
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return int(level)


def configure(level=None, stream=None):
    """
    Send pfa_geometry log records to a stream.

    Parameters:
    -----------
    level : str, int or None
        Level name or number; defaults to $PFA_GEOMETRY_LOG_LEVEL, then INFO
    stream : file-like, optional
        Destination, stderr if not given

    Returns:
    --------
    The package logger. Calling configure again replaces the handler it
    installed before instead of adding a second one.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(_resolve_level(level))

    for handler in list(package_logger.handlers):
        if getattr(handler, "_pfa_geometry_console", False):
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._pfa_geometry_console = True
    package_logger.addHandler(handler)
    return package_logger
