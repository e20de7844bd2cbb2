"""
Hosting of the execution loop under the Windows service control manager.

Imported only on Windows, where pywin32 provides the service bindings.
"""

import logging
from collections.abc import Callable

import pywintypes
import servicemanager
import win32service
import win32serviceutil

from crashpadkiller.errors import ConfigError, ServiceError
from crashpadkiller.loop import ExecutionLoop
from crashpadkiller.service import SERVICE_DESCRIPTION, SERVICE_DISPLAY_NAME, SERVICE_NAME

logger = logging.getLogger(__name__)

# StartServiceCtrlDispatcher fails with this when not launched by the SCM
ERROR_FAILED_SERVICE_CONTROLLER_CONNECT = 1063
STOP_TIMEOUT = 30.0


class CrashpadKillerService(win32serviceutil.ServiceFramework):
    """Service whose run phase is the daemon loop."""

    _svc_name_ = SERVICE_NAME
    _svc_display_name_ = SERVICE_DISPLAY_NAME
    _svc_description_ = SERVICE_DESCRIPTION

    loop_factory: Callable[[], ExecutionLoop] | None = None

    def __init__(self, args):
        super().__init__(args)
        self.loop = self.loop_factory()

    def SvcStop(self):
        self.ReportServiceStatus(win32service.SERVICE_STOP_PENDING)
        logger.info("Stop requested by the service manager")
        self.loop.stop(timeout=STOP_TIMEOUT)

    def SvcDoRun(self):
        servicemanager.LogMsg(
            servicemanager.EVENTLOG_INFORMATION_TYPE,
            servicemanager.PYS_SERVICE_STARTED,
            (self._svc_name_, ""),
        )
        try:
            self.loop.run_forever()
        except ConfigError:
            # Raising reports SERVICE_STOPPED with an error code to the SCM
            logger.error("Service stopped: configuration could not be loaded")
            raise
        servicemanager.LogMsg(
            servicemanager.EVENTLOG_INFORMATION_TYPE,
            servicemanager.PYS_SERVICE_STOPPED,
            (self._svc_name_, ""),
        )


def host(loop_factory: Callable[[], ExecutionLoop]) -> None:
    """
    Run the service in this process until the service manager stops it.

    Raises:
        ServiceError: If the process was not started by the service manager.
    """
    CrashpadKillerService.loop_factory = staticmethod(loop_factory)
    servicemanager.Initialize()
    servicemanager.PrepareToHostSingle(CrashpadKillerService)
    try:
        servicemanager.StartServiceCtrlDispatcher()
    except pywintypes.error as exc:
        if exc.winerror == ERROR_FAILED_SERVICE_CONTROLLER_CONNECT:
            raise ServiceError(
                "'service run' must be started by the Windows service manager; "
                "use 'daemon' to run in a console."
            ) from exc
        raise ServiceError(f"Service dispatcher failed: {exc}") from exc
