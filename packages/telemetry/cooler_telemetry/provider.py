"""Telemetry sampling: probe process first, OS counters and placeholders second."""

from __future__ import annotations

import json
import logging
import math
import os
import random
from pathlib import Path
from typing import Any, Callable

import psutil

from cooler_toolset import CommandRunner

from .cpu_load import CpuLoadMeter
from .models import ReadingSource, TelemetryReading


logger = logging.getLogger(__name__)

PROBE_ARGS = ("--json", "--single")

# Placeholder bounds used only when the OS exposes no sensor for a field.
SYNTHETIC_CPU_TEMP_C = (45.0, 60.0)
SYNTHETIC_FAN_RPM = (1200, 2400)
SYNTHETIC_PRESSURE_LABELS = ("Nominal", "Moderate")

ProbeLocator = Callable[[], Path | None]


class _GpuAdapter:
    def poll(self) -> float | None:
        return None


class _NvmlGpuAdapter(_GpuAdapter):
    def __init__(self) -> None:
        import pynvml  # type: ignore

        self._nvml = pynvml
        pynvml.nvmlInit()

    def poll(self) -> float | None:
        nvml = self._nvml
        if nvml.nvmlDeviceGetCount() < 1:
            return None
        h = nvml.nvmlDeviceGetHandleByIndex(0)
        return float(nvml.nvmlDeviceGetTemperature(h, nvml.NVML_TEMPERATURE_GPU))


def _build_gpu_adapter() -> _GpuAdapter:
    try:
        return _NvmlGpuAdapter()
    except Exception:
        return _GpuAdapter()


def _cpu_temp_c() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except Exception:
        return None
    if not temps:
        return None

    for name in ("coretemp", "cpu_thermal", "k10temp", "acpitz"):
        entries = temps.get(name)
        if entries:
            val = entries[0].current
            return float(val) if val is not None else None

    for _name, entries in temps.items():
        if entries and entries[0].current is not None:
            return float(entries[0].current)
    return None


def _fan_rpm() -> int | None:
    try:
        fans = psutil.sensors_fans()
    except Exception:
        return None
    for _name, entries in (fans or {}).items():
        if entries and entries[0].current:
            return int(entries[0].current)
    return None


def _number(payload: dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    # json.loads accepts NaN and Infinity.
    return result if math.isfinite(result) else 0.0


def parse_probe_output(text: str) -> TelemetryReading | None:
    """Build a reading from probe JSON; None when the payload is not a JSON object.

    Individual missing or malformed fields default to zero / "Unknown".
    """
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None

    pressure = payload.get("thermal_pressure")
    return TelemetryReading(
        cpu_temp_c=_number(payload, "cpu_temp"),
        gpu_temp_c=_number(payload, "gpu_temp"),
        cpu_usage_percent=_number(payload, "cpu_usage"),
        fan_speed_rpm=int(_number(payload, "fan_speed")),
        thermal_pressure=pressure if isinstance(pressure, str) and pressure else "Unknown",
        source=ReadingSource.PROBE,
    )


class TelemetrySampler:
    def __init__(
        self,
        runner: CommandRunner,
        locate_probe: ProbeLocator,
        exists: Callable[[str], bool] = os.path.isfile,
        cpu_meter: CpuLoadMeter | None = None,
        gpu: _GpuAdapter | None = None,
        cpu_temp: Callable[[], float | None] = _cpu_temp_c,
        fan_rpm: Callable[[], int | None] = _fan_rpm,
        rng: random.Random | None = None,
    ) -> None:
        self.runner = runner
        self.locate_probe = locate_probe
        self.exists = exists
        self._cpu_meter = cpu_meter or CpuLoadMeter()
        self._gpu = gpu if gpu is not None else _build_gpu_adapter()
        self._cpu_temp = cpu_temp
        self._fan_rpm = fan_rpm
        self._rng = rng or random.Random()

    def sample(self) -> TelemetryReading:
        probe = self.locate_probe()
        if probe is not None and self.exists(str(probe)):
            result = self.runner.run(str(probe), list(PROBE_ARGS), merge_stderr=False)
            reading = parse_probe_output(result.message) if result.succeeded else None
            if reading is not None:
                return reading
            logger.info("telemetry probe unusable, using system fallback", extra={"event": "telemetry_fallback"})
        return self.sample_system()

    def sample_system(self) -> TelemetryReading:
        synthetic: set[str] = set()

        cpu_usage = self._cpu_meter.percent()

        cpu_temp = self._cpu_temp()
        if cpu_temp is None:
            cpu_temp = round(self._rng.uniform(*SYNTHETIC_CPU_TEMP_C), 1)
            synthetic.add("cpu_temp_c")

        try:
            gpu_temp = self._gpu.poll()
        except Exception as exc:
            logger.warning("gpu temperature read failed: %s", exc, extra={"event": "gpu_poll_failed"})
            gpu_temp = None
        if gpu_temp is None:
            gpu_temp = cpu_temp
            synthetic.add("gpu_temp_c")

        fan = self._fan_rpm()
        if fan is None:
            fan = self._rng.randint(*SYNTHETIC_FAN_RPM)
            synthetic.add("fan_speed_rpm")

        pressure = self._rng.choice(SYNTHETIC_PRESSURE_LABELS)
        synthetic.add("thermal_pressure")

        return TelemetryReading(
            cpu_temp_c=float(cpu_temp),
            gpu_temp_c=float(gpu_temp),
            cpu_usage_percent=cpu_usage,
            fan_speed_rpm=int(fan),
            thermal_pressure=pressure,
            source=ReadingSource.SYSTEM,
            synthetic_fields=frozenset(synthetic),
        )
