"""Exception hierarchy for crashpadkiller."""

from pathlib import Path


class CrashpadKillerError(Exception):
    """Base class for all crashpadkiller errors."""


class ConfigError(CrashpadKillerError):
    """The target list could not be loaded.

    Raised for a missing or unreadable configuration file, malformed XML,
    or a document without a ``processes`` element. Never retried.
    """

    def __init__(self, reason: str, path: Path | str | None = None) -> None:
        self.reason = reason
        self.path = path
        message = f"Failed to load process configuration: {reason}"
        if path is not None:
            message = f"{message} (path: {path})"
        super().__init__(message)

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception, if any."""
        return self.__cause__


class TerminationError(CrashpadKillerError):
    """A single matched process could not be killed."""

    def __init__(self, name: str, pid: int, cause: BaseException) -> None:
        self.name = name
        self.pid = pid
        self.cause = cause
        super().__init__(f"Failed to kill {name} (PID: {pid}): {cause}")


class TickError(CrashpadKillerError):
    """An unexpected error escaped a termination pass."""


class ServiceError(CrashpadKillerError):
    """The host service manager rejected a request."""
