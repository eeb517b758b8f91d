"""Hardware telemetry sampling for the cooler agent."""

from .cpu_load import CpuLoadMeter, usage_percent
from .models import EMPTY_READING, ReadingSource, TelemetryReading
from .provider import TelemetrySampler, parse_probe_output
from .units import TemperatureLevel, TemperatureUnit, classify_temperature

__all__ = [
    "CpuLoadMeter",
    "EMPTY_READING",
    "ReadingSource",
    "TelemetryReading",
    "TelemetrySampler",
    "TemperatureLevel",
    "TemperatureUnit",
    "classify_temperature",
    "parse_probe_output",
    "usage_percent",
]
