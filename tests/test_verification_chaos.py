"""Verification Test: kill real processes while some of them vanish.

Spawns dummy worker processes, terminates a random subset behind the
engine's back, then runs a termination pass over all of them. Every
survivor must be killed, every vanished process must be reported as a
failure, and the pass must never raise.
"""

import multiprocessing
import random
import time

import psutil

from crashpadkiller.engine import TerminationEngine
from crashpadkiller.loop import ExecutionLoop
from crashpadkiller.models import ProcessRecord
from crashpadkiller.source import LiveProcess

# Spawned workers are direct children on every platform
_CONTEXT = multiprocessing.get_context("spawn")


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class ChildProcessSource:
    """Live source restricted to the test's own children."""

    def __init__(self, pids: list[int], name: str) -> None:
        self._pids = pids
        self._name = name

    def enumerate(self) -> list:
        # Only our own children, so a recycled pid never hits a stranger
        children = {child.pid: child for child in psutil.Process().children()}
        processes = []
        for pid in list(self._pids):
            proc = children.get(pid)
            if proc is None:
                # Still offered to the engine so the kill fails
                processes.append(_Vanished(pid, self._name))
            else:
                processes.append(LiveProcess(proc, ProcessRecord(pid, self._name)))
        return processes


class _Vanished:
    """A process that exited between enumeration and kill."""

    def __init__(self, pid: int, name: str) -> None:
        self.pid = pid
        self.name = name

    def kill(self, entire_tree: bool) -> None:
        raise psutil.NoSuchProcess(self.pid, self.name)


def _spawn(count: int) -> list[multiprocessing.process.BaseProcess]:
    processes = []
    for _ in range(count):
        p = _CONTEXT.Process(target=dummy_worker, args=(60.0,))
        p.start()
        processes.append(p)
    return processes


def _cleanup(processes: list[multiprocessing.process.BaseProcess]) -> None:
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosKill:
    """Chaos verification suite tests."""

    def test_kills_survivors_and_reports_vanished(self):
        """Test the pass kills every live child despite earlier vanishings."""
        processes = _spawn(10)
        try:
            victims = random.sample(processes, 4)
            for p in victims:
                p.terminate()
            for p in victims:
                p.join(timeout=5.0)

            pids = [p.pid for p in processes]
            engine = TerminationEngine(ChildProcessSource(pids, "dummy_worker"))

            result = engine.run(["dummy_worker"])

            assert result.matched == 10
            assert {r.pid for r in result.killed} == {p.pid for p in processes if p not in victims}
            assert {e.pid for e in result.failures} == {p.pid for p in victims}

            for p in processes:
                p.join(timeout=5.0)
                assert not p.is_alive()
        finally:
            _cleanup(processes)

    def test_kill_leaves_other_processes_alone(self):
        """Test a kill only affects the matched process."""
        processes = _spawn(2)
        try:
            target, bystander = processes
            engine = TerminationEngine(ChildProcessSource([target.pid], "dummy_worker"))

            engine.run(["dummy_worker"])
            target.join(timeout=5.0)

            assert not target.is_alive()
            assert bystander.is_alive()
        finally:
            _cleanup(processes)

    def test_daemon_loop_kills_late_arrivals(self):
        """Test every tick enumerates again and catches new processes."""
        processes = _spawn(1)
        pids = [p.pid for p in processes]
        loop = ExecutionLoop(
            TerminationEngine(ChildProcessSource(pids, "dummy_worker")),
            lambda: ("dummy_worker",),
            interval=0.2,
        )
        try:
            loop.start()
            processes[0].join(timeout=5.0)
            assert not processes[0].is_alive()

            late = _spawn(1)
            processes.extend(late)
            pids.append(late[0].pid)

            late[0].join(timeout=5.0)
            assert not late[0].is_alive()
            assert loop.is_running
        finally:
            loop.stop(timeout=5.0)
            _cleanup(processes)
