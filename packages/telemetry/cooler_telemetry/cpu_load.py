"""CPU busy ratio from cumulative tick counters."""

from __future__ import annotations

from typing import Any, Callable

import psutil


def usage_percent(busy_ticks: float, total_ticks: float) -> float:
    if total_ticks <= 0:
        return 0.0
    return max(0.0, min(100.0, busy_ticks / total_ticks * 100.0))


class CpuLoadMeter:
    """(user + system + nice) over all ticks elapsed since the previous call.

    The first call measures against boot, like a single host load snapshot.
    """

    def __init__(self, cpu_times: Callable[[], Any] = psutil.cpu_times) -> None:
        self._cpu_times = cpu_times
        self._prev: tuple[float, float] | None = None

    def percent(self) -> float:
        times = self._cpu_times()
        busy = float(times.user) + float(times.system) + float(getattr(times, "nice", 0.0))
        total = busy + float(times.idle)

        if self._prev is None:
            delta_busy, delta_total = busy, total
        else:
            delta_busy, delta_total = busy - self._prev[0], total - self._prev[1]
        self._prev = (busy, total)
        return usage_percent(delta_busy, delta_total)
