"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ReadingSource(str, Enum):
    PROBE = "probe"
    SYSTEM = "system"


@dataclass(frozen=True)
class TelemetryReading:
    cpu_temp_c: float
    gpu_temp_c: float
    cpu_usage_percent: float
    fan_speed_rpm: int
    thermal_pressure: str
    source: ReadingSource = ReadingSource.PROBE
    # Names of fields filled with placeholder values rather than measured ones.
    synthetic_fields: frozenset[str] = field(default_factory=frozenset)

    @property
    def synthetic(self) -> bool:
        return bool(self.synthetic_fields)


EMPTY_READING = TelemetryReading(
    cpu_temp_c=0.0,
    gpu_temp_c=0.0,
    cpu_usage_percent=0.0,
    fan_speed_rpm=0,
    thermal_pressure="Nominal",
)
