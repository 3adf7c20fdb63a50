from __future__ import annotations

import logging
import os
import sys

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

PACKAGE_LOGGER = "readanchor"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


def trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:  # type: ignore[override]
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, msg, args, **kwargs)


logging.Logger.trace = trace  # type: ignore[attr-defined]


def _level_from_name(name: str) -> int:
    name = name.strip().upper()
    if name == "TRACE":
        return TRACE_LEVEL
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(default_level: str = "INFO") -> logging.Logger:
    """Return the ``readanchor`` logger at the ``ANCHOR_LOG_LEVEL`` level.

    A stdout handler is installed on the root logger only when the host
    application has not configured logging itself; the package logger's
    level is set either way so anchoring verbosity can be tuned alone.
    """

    level = _level_from_name(os.getenv("ANCHOR_LOG_LEVEL", default_level))
    logging.basicConfig(level=level, stream=sys.stdout, format=LOG_FORMAT)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    return logger


def anchors_logger(component: str) -> logging.Logger:
    """Child logger for one anchoring component, e.g. ``readanchor.anchors.resolver``."""

    return configure_logging().getChild(f"anchors.{component}")


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER", "TRACE_LEVEL", "anchors_logger", "configure_logging"]
