"""
Logging setup for the cdp-pilot command line.

Library modules only create loggers; handlers are installed here, once, by
the process that owns the terminal.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Logs every command sent to the browser
PROTOCOL_LOGGER = "cdp_pilot.core.connection"

# Transport libraries, chatty at DEBUG
QUIET_LOGGERS = ("websockets", "aiohttp")


def _as_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
    trace_protocol: bool = False,
) -> logging.Logger:
    """
    Route log records to stdout and, optionally, to a file.

    Protocol traffic is kept out of DEBUG output unless ``trace_protocol``
    is set, so ``--debug`` shows navigation and wait transitions only.

    Args:
        level: Root level, as a number or a name such as ``"debug"``
        format_string: Record format, ``DEFAULT_FORMAT`` if not given
        log_file: Also append records to this file, creating its directory
        trace_protocol: Log each command sent to the browser

    Returns:
        The configured root logger
    """
    level = _as_level(level)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    protocol_level = logging.DEBUG if trace_protocol else max(level, logging.INFO)
    logging.getLogger(PROTOCOL_LOGGER).setLevel(protocol_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return root_logger
