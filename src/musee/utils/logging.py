"""Logging helpers for Musée."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER: Optional[logging.Logger] = None


def get_logger(verbose: Optional[bool] = None) -> logging.Logger:
    """Return the ``musee`` package logger.

    The first call attaches a stream handler at INFO.  Passing *verbose*
    switches the level between DEBUG and INFO on an existing logger too, so
    the command line can raise verbosity after library code has logged.
    """

    global _LOGGER
    if _LOGGER is None:
        _LOGGER = logging.getLogger("musee")
        if not _LOGGER.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
            _LOGGER.addHandler(handler)
        _LOGGER.setLevel(logging.INFO)
    if verbose is not None:
        _LOGGER.setLevel(logging.DEBUG if verbose else logging.INFO)
    return _LOGGER
