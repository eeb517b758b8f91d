"""Doctor payload describing the local toolset layout and agent settings."""

from __future__ import annotations

import os
import platform
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Callable

from cooler_toolset import brew_candidates, resolve_layout

from .config import AppConfig, config_path
from .logging_setup import log_dir


def build_doctor_payload(cfg: AppConfig, exists: Callable[[str], bool] = os.path.isfile) -> dict[str, Any]:
    candidates = brew_candidates(cfg.toolset.brew_paths)
    layout = resolve_layout(candidates, exists=exists)

    toolset: dict[str, Any] = {
        "brew_candidates": [{"path": p, "exists": exists(p)} for p in candidates],
        "brew_path": None,
        "thermal_monitor": None,
        "thermal_power": None,
    }
    if layout is not None:
        toolset["brew_path"] = str(layout.brew_path)
        toolset["thermal_monitor"] = {
            "path": str(layout.thermal_monitor_path),
            "exists": exists(str(layout.thermal_monitor_path)),
        }
        toolset["thermal_power"] = {
            "path": str(layout.thermal_power_path),
            "exists": exists(str(layout.thermal_power_path)),
        }

    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config_path": str(config_path()),
        "log_dir": str(log_dir()),
        "config": asdict(cfg),
        "toolset": toolset,
    }
