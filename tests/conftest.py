"""Shared fixtures for crashpadkiller tests."""

import logging

import pytest

from crashpadkiller.logging_config import reset_logging


class FakeProcess:
    """Process double that records every kill call."""

    def __init__(self, name: str, pid: int, error: Exception | None = None) -> None:
        self.name = name
        self.pid = pid
        self.error = error
        self.kill_calls: list[bool] = []

    def kill(self, entire_tree: bool) -> None:
        self.kill_calls.append(entire_tree)
        if self.error is not None:
            raise self.error

    def __repr__(self) -> str:
        return f"FakeProcess({self.name!r}, {self.pid})"


class FakeTextSource:
    """Text source double returning a fixed document or raising."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.paths: list = []

    def read_text(self, path) -> str:
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def debug_caplog(caplog):
    """caplog capturing debug records from the crashpadkiller package."""
    caplog.set_level(logging.DEBUG, logger="crashpadkiller")
    return caplog


@pytest.fixture(autouse=True)
def _clean_logging():
    """Undo any handlers the CLI installed."""
    yield
    reset_logging()
