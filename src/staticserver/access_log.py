"""
=============================================================================
ACCESS LOG AND CONSOLE LOGGING
=============================================================================

All modules log through the standard library:

    logging.getLogger(__name__)          # module loggers
    logging.getLogger("staticserver.access")   # one line per request

Nothing in the server prints. This module only decides how records look on
the console.

=============================================================================
ACCESS LINES
=============================================================================

The handler chain emits one record per request:

    logger.info("%d %s", 404, "/missing.txt",
                extra={"status_code": 404, "url": "/missing.txt"})

On a terminal the status code is colored by class:

    ┌────────┬──────────┐
    │ 1xx    │ blue     │
    │ 2xx    │ green    │
    │ 3xx    │ yellow   │
    │ 4xx    │ red      │
    │ 5xx    │ red      │
    └────────┴──────────┘

When output is redirected to a file there are no escape codes.

=============================================================================
"""

import logging
import sys
from typing import Optional, TextIO, Union

import colorama
from colorama import Fore, Style


ACCESS_LOGGER = "staticserver.access"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

RESET = Style.RESET_ALL
STATUS_COLORS = {
    1: Fore.BLUE,
    2: Fore.GREEN,
    3: Fore.YELLOW,
    4: Fore.RED,
    5: Fore.RED,
}


def status_color(status_code: int) -> str:
    """ANSI color sequence for a status code, or "" if out of range."""
    return STATUS_COLORS.get(int(status_code) // 100, "")


class StatusColorFormatter(logging.Formatter):
    """
    Formatter that colors the status code of access records.

    Records without a `status_code` attribute are formatted unchanged, so
    one handler serves both access lines and ordinary log messages.
    """

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: Optional[str] = None, use_color: bool = True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        status = getattr(record, "status_code", None)
        if not self.use_color or status is None:
            return super().format(record)

        color = status_color(status)
        if not color:
            return super().format(record)

        # Color only the status, leave the rest of the line alone
        original_msg, original_args = record.msg, record.args
        url = getattr(record, "url", "")
        record.msg = "%s%d%s %s"
        record.args = (color, status, RESET, url)
        try:
            return super().format(record)
        finally:
            record.msg, record.args = original_msg, original_args


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def configure_logging(
    level: Union[int, str] = "INFO",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Install a console handler on the "staticserver" logger.

    Calling it again replaces the handler installed by the previous call
    instead of adding a second one.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number.
        stream: Output stream, stderr by default.

    Returns:
        The installed handler.
    """
    colorama.just_fix_windows_console()
    stream = stream or sys.stderr
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger("staticserver")
    for existing in list(root.handlers):
        if getattr(existing, "_staticserver_console", False):
            root.removeHandler(existing)

    console = logging.StreamHandler(stream)
    console.setFormatter(StatusColorFormatter(use_color=_is_tty(stream)))
    console._staticserver_console = True

    root.addHandler(console)
    root.setLevel(level)
    return console
