"""Persistent agent settings schema and load/save helpers."""

from __future__ import annotations

import json
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from cooler_toolset.layout import DEFAULT_BREW_PATHS
from cooler_toolset.orchestrator import DEFAULT_TAP
from cooler_toolset.probe import DEFAULT_FORMULA, LATEST_VERSION


CONFIG_VERSION = 2
ONBOARDING_VERSION = 1

TEMPERATURE_UNITS = ("fahrenheit", "celsius")
APPEARANCES = ("system", "light", "dark")


@dataclass
class OnboardingConfig:
    completed: bool = False
    version: int = ONBOARDING_VERSION


@dataclass
class UiConfig:
    temperature_unit: str = "fahrenheit"
    appearance: str = "system"
    show_temperature_in_menu_bar: bool = True


@dataclass
class StartupConfig:
    launch_at_login: bool = False


@dataclass
class ThresholdsConfig:
    low_c: float = 65.0
    high_c: float = 80.0
    critical_c: float = 95.0


@dataclass
class ToolsetConfig:
    formula: str = DEFAULT_FORMULA
    tap: str = DEFAULT_TAP
    latest_version: str = LATEST_VERSION
    brew_paths: list[str] = field(default_factory=lambda: list(DEFAULT_BREW_PATHS))


@dataclass
class SamplingConfig:
    interval_s: float = 3.0


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    onboarding: OnboardingConfig = field(default_factory=OnboardingConfig)
    ui: UiConfig = field(default_factory=UiConfig)
    startup: StartupConfig = field(default_factory=StartupConfig)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    toolset: ToolsetConfig = field(default_factory=ToolsetConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)


def config_root() -> Path:
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "MacBookCooler"
    return Path.home() / ".config" / "macbook-cooler"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in (raw or {}).items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_ui(cfg: AppConfig) -> None:
    unit = str(cfg.ui.temperature_unit).lower()
    cfg.ui.temperature_unit = unit if unit in TEMPERATURE_UNITS else "fahrenheit"
    appearance = str(cfg.ui.appearance).lower()
    cfg.ui.appearance = appearance if appearance in APPEARANCES else "system"


def _normalize_thresholds(cfg: AppConfig) -> None:
    t = cfg.thresholds
    t.low_c = float(t.low_c)
    t.high_c = float(max(t.low_c, float(t.high_c)))
    t.critical_c = float(max(t.high_c, float(t.critical_c)))


def _normalize_sampling(cfg: AppConfig) -> None:
    cfg.sampling.interval_s = float(max(1.0, min(60.0, float(cfg.sampling.interval_s))))


def _normalize_toolset(cfg: AppConfig) -> None:
    paths = [str(p) for p in (cfg.toolset.brew_paths or []) if p]
    cfg.toolset.brew_paths = paths or list(DEFAULT_BREW_PATHS)


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 is the flat key/value preferences layout.
        onboarding = dict(data.get("onboarding", {}) or {})
        if "hasCompletedOnboarding" in data:
            onboarding["completed"] = bool(data.pop("hasCompletedOnboarding"))
        ui = dict(data.get("ui", {}) or {})
        if "temperatureUnit" in data:
            ui["temperature_unit"] = str(data.pop("temperatureUnit")).lower()
        if "appearanceMode" in data:
            ui["appearance"] = str(data.pop("appearanceMode")).lower()
        if "showTemperatureInMenuBar" in data:
            ui["show_temperature_in_menu_bar"] = bool(data.pop("showTemperatureInMenuBar"))
        startup = dict(data.get("startup", {}) or {})
        if "launchAtLogin" in data:
            startup["launch_at_login"] = bool(data.pop("launchAtLogin"))
        thresholds = dict(data.get("thresholds", {}) or {})
        for old, new in (("lowThreshold", "low_c"), ("highThreshold", "high_c"), ("criticalThreshold", "critical_c")):
            if old in data:
                thresholds[new] = float(data.pop(old))

        data["onboarding"] = onboarding
        data["ui"] = ui
        data["startup"] = startup
        data["thresholds"] = thresholds
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        onboarding=_merge(OnboardingConfig, data.get("onboarding", {})),
        ui=_merge(UiConfig, data.get("ui", {})),
        startup=_merge(StartupConfig, data.get("startup", {})),
        thresholds=_merge(ThresholdsConfig, data.get("thresholds", {})),
        toolset=_merge(ToolsetConfig, data.get("toolset", {})),
        sampling=_merge(SamplingConfig, data.get("sampling", {})),
    )

    _normalize_ui(cfg)
    _normalize_thresholds(cfg)
    _normalize_sampling(cfg)
    _normalize_toolset(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
