"""Data models for crashpadkiller."""

from dataclasses import dataclass

# Ordered process names, exactly as they appear in the configuration.
TargetList = tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable view of a process at enumeration time."""

    pid: int  # 0 is the idle process on Windows
    name: str
