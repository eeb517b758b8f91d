"""Power mode requests and the commands that apply them."""

from __future__ import annotations

from enum import Enum

from .layout import ToolsetLayout


SUDO_PATH = "/usr/bin/sudo"


class PowerMode(str, Enum):
    AUTOMATIC = "Automatic"
    LOW_POWER = "Low Power"
    NORMAL = "Normal"
    HIGH_PERFORMANCE = "High Performance"

    @property
    def short_name(self) -> str:
        return {
            PowerMode.AUTOMATIC: "Auto",
            PowerMode.LOW_POWER: "Low",
            PowerMode.NORMAL: "Normal",
            PowerMode.HIGH_PERFORMANCE: "High",
        }[self]


def parse_power_mode(value: str) -> PowerMode:
    needle = value.strip().lower().replace("-", " ").replace("_", " ")
    for mode in PowerMode:
        if needle in (mode.value.lower(), mode.short_name.lower()):
            return mode
    raise ValueError(f"unknown power mode: {value!r}")


def power_command(mode: PowerMode, layout: ToolsetLayout) -> list[str]:
    """Arguments for ``sudo -n``; there is no matching query command."""
    if mode is PowerMode.AUTOMATIC:
        return ["-n", str(layout.thermal_power_path), "--daemon"]
    flag = "1" if mode is PowerMode.LOW_POWER else "0"
    return ["-n", "pmset", "-a", "lowpowermode", flag]
