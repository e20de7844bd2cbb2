"""Execution loop that drives the termination engine."""

import logging
import threading
from collections.abc import Callable
from enum import Enum

from crashpadkiller.engine import TerminationEngine
from crashpadkiller.errors import ConfigError, TickError
from crashpadkiller.models import TargetList

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0
DEFAULT_RECOVERY_DELAY = 10.0


class LoopState(Enum):
    """Lifecycle states of the execution loop."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    EXECUTING = "executing"
    WAITING = "waiting"
    STOPPED = "stopped"


class ExecutionLoop:
    """
    Runs the termination engine once or on a fixed interval.

    The target list is loaded once when the loop starts and reused by every
    tick. Errors escaping a tick are logged and followed by a short recovery
    delay; configuration errors are fatal and never retried. ``stop()``
    interrupts the wait between ticks but lets a running tick finish.
    """

    def __init__(
        self,
        engine: TerminationEngine,
        loader: Callable[[], TargetList],
        interval: float = DEFAULT_INTERVAL,
        recovery_delay: float = DEFAULT_RECOVERY_DELAY,
        log: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the ExecutionLoop.

        Args:
            engine: The engine invoked on every tick.
            loader: Returns the target list; called once per start.
            interval: Seconds between ticks in daemon mode.
            recovery_delay: Seconds to wait after a failed tick. Capped at
                half the interval.
            log: Logger for loop events. Defaults to this module's.
        """
        self._engine = engine
        self._loader = loader
        self._interval = interval
        self._recovery_delay = recovery_delay
        self._log = log or logger
        self._targets: TargetList = ()
        self._state = LoopState.IDLE
        self._ticks = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def targets(self) -> TargetList:
        """The target list loaded at start."""
        return self._targets

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def recovery_delay(self) -> float:
        """Effective recovery delay, always shorter than the interval."""
        return min(self._recovery_delay, self._interval / 2)

    @property
    def ticks(self) -> int:
        """Number of ticks executed since construction."""
        return self._ticks

    @property
    def is_running(self) -> bool:
        """Check if the background thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def load(self) -> TargetList:
        """
        Validate the schedule and load the target list.

        Raises:
            ValueError: If the interval is not positive.
            ConfigError: If the configuration cannot be loaded.
        """
        if self._interval <= 0:
            self._state = LoopState.STOPPED
            raise ValueError(f"Interval must be positive, got {self._interval}")

        self._state = LoopState.STARTING
        try:
            self._targets = tuple(self._loader())
        except ConfigError as exc:
            self._state = LoopState.STOPPED
            self._log.error("Failed to load configuration. Loop will not start: %s", exc)
            raise
        except Exception as exc:
            self._state = LoopState.STOPPED
            self._log.error("Failed to load configuration. Loop will not start: %s", exc)
            raise ConfigError(f"loader failed: {exc}") from exc

        self._log.info("Starting with %d target(s)", len(self._targets))
        for target in self._targets:
            self._log.info("Target: %s", target)
        self._state = LoopState.RUNNING
        return self._targets

    def run_once(self) -> None:
        """
        Load the configuration and execute exactly one tick.

        Raises:
            ConfigError: If the configuration cannot be loaded.
            TickError: If the tick failed unexpectedly.
        """
        self.load()
        try:
            self._execute()
        except Exception as exc:
            raise TickError(f"Error during process execution: {exc}") from exc
        finally:
            self._state = LoopState.STOPPED

    def run_forever(self) -> None:
        """Load the configuration and tick until ``stop()`` is called."""
        self.load()
        self._run_loop()

    def start(self) -> None:
        """
        Start the daemon loop in a background thread.

        Configuration is loaded in the calling thread, so a ``ConfigError``
        is raised here rather than lost in the worker.
        """
        if self.is_running:
            return

        self._stop_event.clear()
        self.load()
        self._thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name="ExecutionLoop",
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """
        Request the loop to stop.

        Args:
            timeout: How long to wait for the background thread (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def join(self, timeout: float | None = None) -> bool:
        """
        Wait for the background thread without requesting a stop.

        Returns:
            True if the loop is no longer running.
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
        return not self.is_running

    def _execute(self) -> None:
        self._state = LoopState.EXECUTING
        self._ticks += 1
        result = self._engine.run(self._targets)
        self._log.debug(
            "Tick %d: %d matched, %d killed, %d failed",
            self._ticks,
            result.matched,
            len(result.killed),
            len(result.failures),
        )

    def _run_loop(self) -> None:
        """Tick, wait, repeat until a stop is requested."""
        while not self._stop_event.is_set():
            try:
                self._execute()
                delay = self._interval
            except Exception:
                self._log.exception("Error during process execution")
                delay = self.recovery_delay

            self._state = LoopState.WAITING
            # Returns True as soon as stop() is called
            if self._stop_event.wait(timeout=delay):
                break

        self._state = LoopState.STOPPED
        self._log.info("Execution loop stopped")
