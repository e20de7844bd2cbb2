"""Process enumeration for crashpadkiller."""

import sys
from collections.abc import Iterable, Sequence
from typing import Protocol

import psutil

from crashpadkiller.models import ProcessRecord


class Process(Protocol):
    """A live process that can be killed."""

    @property
    def name(self) -> str: ...

    @property
    def pid(self) -> int: ...

    def kill(self, entire_tree: bool) -> None: ...


class ProcessSource(Protocol):
    """Something that returns the current process table."""

    def enumerate(self) -> Sequence[Process]: ...


def _display_name(name: str) -> str:
    """Strip the ``.exe`` suffix Windows adds to executable names."""
    if sys.platform == "win32" and name.lower().endswith(".exe"):
        return name[:-4]
    return name


class LiveProcess:
    """A psutil process paired with the record captured at enumeration."""

    __slots__ = ("_proc", "_record")

    def __init__(self, proc: psutil.Process, record: ProcessRecord) -> None:
        self._proc = proc
        self._record = record

    @property
    def record(self) -> ProcessRecord:
        return self._record

    @property
    def name(self) -> str:
        return self._record.name

    @property
    def pid(self) -> int:
        return self._record.pid

    def kill(self, entire_tree: bool = False) -> None:
        """
        Kill the process.

        Args:
            entire_tree: Also kill every descendant, children first.

        Raises:
            psutil.Error: If the process is gone or access is denied.
        """
        if entire_tree:
            for child in self._proc.children(recursive=True):
                child.kill()
        # psutil refuses to signal a pid that was recycled since enumeration
        self._proc.kill()

    def __repr__(self) -> str:
        return f"LiveProcess(pid={self.pid}, name={self.name!r})"


class PsutilProcessSource:
    """Process source backed by ``psutil.process_iter``."""

    def enumerate(self) -> list[LiveProcess]:
        """
        Take a fresh snapshot of the process table.

        Processes that exit or deny access while being read are skipped.
        """
        processes: list[LiveProcess] = []

        for proc in psutil.process_iter(attrs=["pid", "name"]):
            try:
                info = proc.info
                record = ProcessRecord(
                    pid=info.get("pid", proc.pid),
                    name=_display_name(info.get("name") or ""),
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            processes.append(LiveProcess(proc, record))

        return processes


class StaticProcessSource:
    """Process source that always returns the same injected processes."""

    def __init__(self, processes: Iterable[Process] = ()) -> None:
        self._processes = list(processes)

    def enumerate(self) -> list[Process]:
        return list(self._processes)
