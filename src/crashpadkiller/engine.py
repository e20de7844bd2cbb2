"""Termination engine: match the process table against targets and kill."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from crashpadkiller.errors import TerminationError
from crashpadkiller.models import ProcessRecord
from crashpadkiller.source import ProcessSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PassResult:
    """Outcome of one termination pass."""

    matched: int = 0
    killed: list[ProcessRecord] = field(default_factory=list)
    failures: list[TerminationError] = field(default_factory=list)


class TerminationEngine:
    """
    Kills every process whose name is in the target list.

    The process table is enumerated afresh on every run. A failure to kill
    one process is logged and does not stop the remaining kills.
    """

    def __init__(self, source: ProcessSource, log: logging.Logger | None = None) -> None:
        """
        Initialize the TerminationEngine.

        Args:
            source: Where the current process table comes from.
            log: Logger receiving progress messages. Defaults to this module's.
        """
        self._source = source
        self._log = log or logger

    def run(self, targets: Sequence[str] | None) -> PassResult:
        """Run one termination pass over ``targets``."""
        result = PassResult()

        self._log.info("Killing target processes.")
        self._log.info("Targets are:")
        for target in targets or ():
            self._log.info("%s", target)

        if not targets:
            self._log.warning("No targets specified in configuration.")
        else:
            wanted = set(targets)
            selected = [proc for proc in self._source.enumerate() if proc.name in wanted]
            result.matched = len(selected)

            for proc in selected:
                self._log.debug("Attempting to kill %s (PID: %s)", proc.name, proc.pid)
                try:
                    proc.kill(entire_tree=False)
                except Exception as exc:
                    error = TerminationError(proc.name, proc.pid, exc)
                    self._log.warning("%s", error)
                    result.failures.append(error)
                else:
                    result.killed.append(ProcessRecord(pid=proc.pid, name=proc.name))

        self._log.info("Process complete.")
        return result
