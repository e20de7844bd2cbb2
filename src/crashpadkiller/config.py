"""Configuration loading for crashpadkiller.

The configuration is a small XML document::

    <config>
      <processes>
        <process>crashpad_handler</process>
      </processes>
    </config>

Each ``process`` entry names one executable to terminate. Names are kept
exactly as written, whitespace included.
"""

import logging
import os
import sys
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from crashpadkiller.errors import ConfigError
from crashpadkiller.models import TargetList

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "CRASHPADKILLER_CONFIG_PATH"
DEFAULT_CONFIG_NAME = "process.xml"


class TextSource(Protocol):
    """Anything that can return the text behind a path."""

    def read_text(self, path: Path) -> str: ...


class FileTextSource:
    """Reads configuration text from the local file system."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def read_text(self, path: Path) -> str:
        """Return the contents of ``path``."""
        return Path(path).read_text(encoding=self._encoding)


def parse_targets(raw_text: str) -> TargetList:
    """
    Parse the target list out of a configuration document.

    Args:
        raw_text: The XML document.

    Returns:
        Process names in document order. An empty ``processes`` element
        yields an empty tuple.

    Raises:
        ConfigError: If the XML is malformed or the ``processes`` element
            is missing.
    """
    try:
        root = ET.fromstring(raw_text)
    except ET.ParseError as exc:
        raise ConfigError(f"malformed XML: {exc}") from exc

    container = root.find("processes") if root.tag == "config" else None
    if container is None:
        raise ConfigError("no target list found")

    # itertext() keeps the exact text, including nested and surrounding whitespace
    return tuple("".join(entry.itertext()) for entry in container.findall("process"))


def _executable_dir() -> Path:
    """Directory of the running script or frozen executable."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(sys.argv[0] or ".").resolve().parent


def config_candidates(
    path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
    search_dirs: Iterable[Path] | None = None,
) -> list[Path]:
    """
    List the paths tried when looking for the configuration file.

    The explicit ``path`` wins, then ``$CRASHPADKILLER_CONFIG_PATH``, then
    ``process.xml``. Relative paths are also tried in each of
    ``search_dirs`` (default: next to the executable).
    """
    if environ is None:
        environ = os.environ
    configured = Path(path or environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_NAME)

    candidates = [configured]
    if not configured.is_absolute():
        dirs = [_executable_dir()] if search_dirs is None else list(search_dirs)
        candidates.extend(directory / configured for directory in dirs)
    return candidates


def resolve_config_path(
    path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
    search_dirs: Iterable[Path] | None = None,
) -> Path:
    """Return the first existing candidate, or the first candidate if none exist."""
    candidates = config_candidates(path, environ, search_dirs)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return candidates[0]


def load_targets(
    path: str | os.PathLike | None = None,
    reader: TextSource | None = None,
    environ: Mapping[str, str] | None = None,
    search_dirs: Iterable[Path] | None = None,
) -> TargetList:
    """
    Resolve, read and parse the configuration file.

    Raises:
        ConfigError: If the file cannot be found or read, or does not parse.
    """
    if reader is None:
        reader = FileTextSource()

    candidates = config_candidates(path, environ, search_dirs)
    config_path = resolve_config_path(path, environ, search_dirs)
    logger.info(
        "Loading process configuration from %s (working directory: %s)",
        config_path,
        Path.cwd(),
    )

    try:
        raw_text = reader.read_text(config_path)
    except FileNotFoundError as exc:
        attempted = ", ".join(str(candidate) for candidate in candidates)
        raise ConfigError(
            f"configuration file not found; attempted paths: {attempted}", config_path
        ) from exc
    except Exception as exc:
        raise ConfigError(f"could not read configuration: {exc}", config_path) from exc

    try:
        targets = parse_targets(raw_text)
    except ConfigError as exc:
        raise ConfigError(exc.reason, config_path) from exc.cause

    logger.info("Loaded %d target(s) from %s", len(targets), config_path)
    return targets
