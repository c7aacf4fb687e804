"""Logging setup for the ``reflex_data_explorer`` namespace.

Store reads log their timings at INFO, rejected writes at WARNING and
discarded stale pages at DEBUG; this module decides where those go.
"""

import logging
import sys

_LOGGER_NAME = "reflex_data_explorer"
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO, log_file: str | None = None) -> None:
    """Send the package's log records to stdout and, optionally, *log_file*.

    Calling this again replaces the handlers it installed before, so a
    hot-reloaded Reflex app does not print every line twice.

    Args:
        level: Logging level, as a number or a name such as ``"DEBUG"``.
        log_file: Optional path that receives a copy of every record.
    """
    resolved = _resolve_level(level)
    package_logger = logging.getLogger(_LOGGER_NAME)
    package_logger.setLevel(resolved)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    formatter = logging.Formatter(_FORMAT, datefmt="%H:%M:%S")
    for handler in handlers:
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.debug(
        "grid logging at %s%s",
        logging.getLevelName(resolved),
        f", copied to {log_file}" if log_file else "",
    )
