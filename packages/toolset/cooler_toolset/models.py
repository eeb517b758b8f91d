"""Typed toolset status models and the status transition functions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PackageStatus(str, Enum):
    CHECKING = "Checking"
    NOT_PRESENT = "NotPresent"
    PRESENT_NO_TOOLSET = "PresentNoToolset"
    TOOLSET_CURRENT = "ToolsetCurrent"
    TOOLSET_OUTDATED = "ToolsetOutdated"

    @property
    def terminal(self) -> bool:
        return self is not PackageStatus.CHECKING


@dataclass(frozen=True)
class OperationResult:
    succeeded: bool
    message: str
    step: str | None = None
    partial: bool = False


@dataclass(frozen=True)
class ProbeResult:
    status: PackageStatus
    installed_version: str = ""
    # None when the probe stopped before the service query.
    service_running: bool | None = None


def begin_check(current: PackageStatus) -> PackageStatus:
    """Any status may re-enter Checking on an explicit refresh."""
    return PackageStatus.CHECKING


def complete_check(current: PackageStatus, result: PackageStatus) -> PackageStatus:
    if not result.terminal:
        raise ValueError(f"probe must conclude with a terminal status, got {result.value}")
    return result
