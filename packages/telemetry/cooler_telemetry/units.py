"""Temperature display units and threshold levels."""

from __future__ import annotations

from enum import Enum


class TemperatureUnit(str, Enum):
    FAHRENHEIT = "fahrenheit"
    CELSIUS = "celsius"

    @property
    def symbol(self) -> str:
        return "°F" if self is TemperatureUnit.FAHRENHEIT else "°C"

    def convert(self, celsius: float) -> float:
        if self is TemperatureUnit.FAHRENHEIT:
            return celsius * 9 / 5 + 32
        return celsius


class TemperatureLevel(str, Enum):
    NORMAL = "normal"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"


def classify_temperature(celsius: float, low_c: float, high_c: float, critical_c: float) -> TemperatureLevel:
    if celsius >= critical_c:
        return TemperatureLevel.CRITICAL
    if celsius >= high_c:
        return TemperatureLevel.HIGH
    if celsius >= low_c:
        return TemperatureLevel.ELEVATED
    return TemperatureLevel.NORMAL
