"""
Logging setup for the crashpadkiller command line.

Library modules only create loggers; handlers are installed here, once,
by the CLI entry point.
"""

import logging
import logging.handlers
import sys
import threading
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
EVENT_LOG_SOURCE = "CrashpadKiller"

_config_lock = threading.Lock()
_configured = False


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """
    Configure the ``crashpadkiller`` logger.

    Args:
        verbose: Log debug messages (each kill attempt) as well.
        log_file: Optional file receiving the same records as stderr.
    """
    global _configured

    with _config_lock:
        package_logger = logging.getLogger("crashpadkiller")
        package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        if _configured:
            return

        formatter = logging.Formatter(LOG_FORMAT)

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        package_logger.addHandler(console)

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

        package_logger.propagate = False
        _configured = True


def add_event_log_handler(appname: str = EVENT_LOG_SOURCE) -> logging.Handler | None:
    """
    Also send error records to the Windows Application event log.

    The event source is registered on first use. Does nothing off Windows.

    Returns:
        The event log handler, or None when not on Windows.
    """
    if sys.platform != "win32":
        return None

    with _config_lock:
        package_logger = logging.getLogger("crashpadkiller")
        for handler in package_logger.handlers:
            if isinstance(handler, logging.handlers.NTEventLogHandler):
                return handler

        handler = logging.handlers.NTEventLogHandler(appname)
        handler.setLevel(logging.ERROR)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        package_logger.addHandler(handler)
        return handler


def reset_logging() -> None:
    """Remove handlers installed by this module."""
    global _configured

    with _config_lock:
        package_logger = logging.getLogger("crashpadkiller")
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)
        _configured = False
