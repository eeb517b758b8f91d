"""Package-manager install layout resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence


PRIMARY_BREW_PATH = "/opt/homebrew/bin/brew"
SECONDARY_BREW_PATH = "/usr/local/bin/brew"
DEFAULT_BREW_PATHS = (PRIMARY_BREW_PATH, SECONDARY_BREW_PATH)

THERMAL_MONITOR = "thermal-monitor"
THERMAL_POWER = "thermal-power"

BREW_MISSING_MESSAGE = "Homebrew not installed. Install from https://brew.sh"

Exists = Callable[[str], bool]


@dataclass(frozen=True)
class ToolsetLayout:
    brew_path: Path
    bin_dir: Path

    @property
    def thermal_monitor_path(self) -> Path:
        return self.bin_dir / THERMAL_MONITOR

    @property
    def thermal_power_path(self) -> Path:
        return self.bin_dir / THERMAL_POWER


def brew_candidates(configured: Sequence[str] = DEFAULT_BREW_PATHS) -> list[str]:
    out = []
    override = os.environ.get("COOLER_BREW", "").strip()
    if override:
        out.append(override)
    for path in configured:
        if path and path not in out:
            out.append(path)
    return out


def resolve_layout(candidates: Sequence[str] = DEFAULT_BREW_PATHS, exists: Exists = os.path.isfile) -> ToolsetLayout | None:
    """Return the first installed package manager, or None when none exists."""
    for candidate in candidates:
        if exists(candidate):
            path = Path(candidate)
            return ToolsetLayout(brew_path=path, bin_dir=path.parent)
    return None
