"""Windows service registration through ``sc.exe``."""

import ctypes
import logging
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from crashpadkiller.errors import ServiceError

if TYPE_CHECKING:
    from crashpadkiller.loop import ExecutionLoop

logger = logging.getLogger(__name__)

SERVICE_NAME = "CrashpadKiller"
SERVICE_DISPLAY_NAME = "CrashpadKiller Service"
SERVICE_DESCRIPTION = "Automatically terminates specified processes such as crashpad handlers."


def _require_windows() -> None:
    if sys.platform != "win32":
        raise ServiceError(
            f"Service management is only supported on Windows, not {sys.platform}"
        )


def is_running_as_administrator() -> bool:
    """Check whether the current process has administrator rights."""
    if sys.platform != "win32":
        return False
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except OSError:
        return False


def _require_administrator(action: str) -> None:
    if not is_running_as_administrator():
        raise ServiceError(
            f"Administrator privileges are required to {action} a Windows service."
        )


def run_sc_command(args: list[str], capture: bool = False) -> int:
    """
    Run ``sc.exe`` with the given arguments.

    Args:
        args: Arguments after ``sc.exe``.
        capture: Swallow the command's output instead of printing it.

    Returns:
        The exit code of ``sc.exe``.

    Raises:
        ServiceError: If ``sc.exe`` could not be started.
    """
    logger.debug("Running sc.exe %s", " ".join(args))
    try:
        completed = subprocess.run(
            ["sc.exe", *args],
            capture_output=capture,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ServiceError(f"Failed to execute SC command: {exc}") from exc
    return completed.returncode


def service_launcher() -> str:
    """Quoted command that starts crashpadkiller with the running interpreter."""
    if getattr(sys, "frozen", False):
        return f'"{sys.executable}"'
    return f'"{sys.executable}" -m crashpadkiller'


def service_command_line(config_path: Path, interval: int, launcher: str | None = None) -> str:
    """Build the ``binPath`` value the service manager launches."""
    if launcher is None:
        launcher = service_launcher()
    return f'{launcher} --config "{config_path}" service run --interval {interval}'


def install_service(config_path: Path, interval: int, launcher: str | None = None) -> None:
    """
    Register the service with the Windows service manager.

    The service starts in the system directory, so the configuration is
    pinned by absolute path.

    Args:
        config_path: Configuration file the service loads.
        interval: Seconds between passes for the installed service.
        launcher: Command prefix that starts crashpadkiller. Defaults to
            the running interpreter.
    """
    _require_windows()
    _require_administrator("install")

    exit_code = run_sc_command(
        [
            "create",
            SERVICE_NAME,
            "binPath=",
            service_command_line(Path(config_path).resolve(), interval, launcher),
            "DisplayName=",
            SERVICE_DISPLAY_NAME,
            "start=",
            "auto",
        ]
    )
    if exit_code != 0:
        raise ServiceError(
            f"Failed to install service. SC command exited with code {exit_code}."
        )

    logger.info("Service '%s' installed", SERVICE_DISPLAY_NAME)
    run_sc_command(["description", SERVICE_NAME, SERVICE_DESCRIPTION])


def uninstall_service() -> None:
    """Stop and delete the service."""
    _require_windows()
    _require_administrator("uninstall")

    # Fails harmlessly when the service is not running
    run_sc_command(["stop", SERVICE_NAME])

    exit_code = run_sc_command(["delete", SERVICE_NAME])
    if exit_code != 0:
        raise ServiceError(
            f"Failed to uninstall service. SC command exited with code {exit_code}."
        )
    logger.info("Service '%s' uninstalled", SERVICE_DISPLAY_NAME)


def is_service_installed() -> bool:
    """Check whether the service is registered."""
    _require_windows()
    return run_sc_command(["query", SERVICE_NAME], capture=True) == 0


def host_service(loop_factory: Callable[[], "ExecutionLoop"]) -> None:
    """
    Hand this process to the Windows service control dispatcher.

    Returns once the service manager has stopped the service.

    Raises:
        ServiceError: Off Windows, or when not started by the service manager.
    """
    _require_windows()
    # pywin32 is only installed on Windows
    from crashpadkiller import winservice

    winservice.host(loop_factory)
