"""CLI entrypoints for the cooler agent: toolset status, install, service, power and telemetry."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

from cooler_core import (
    ThermalStateCoordinator,
    build_coordinator,
    build_doctor_payload,
    load_config,
    save_config,
    set_launch_at_login,
)
from cooler_core.config import APPEARANCES, TEMPERATURE_UNITS
from cooler_core.logging_setup import configure_logging, install_crash_hooks
from cooler_telemetry import TelemetryReading, TemperatureUnit, classify_temperature
from cooler_toolset import OperationResult, PackageStatus, parse_power_mode


logger = logging.getLogger(__name__)


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _coordinator() -> ThermalStateCoordinator:
    cfg = load_config()
    return build_coordinator(cfg, save=save_config)


def _settle(coordinator: ThermalStateCoordinator, poll_s: float = 0.12) -> None:
    """Drain the main context until the status probe has concluded."""
    while coordinator.status is PackageStatus.CHECKING:
        coordinator.main.drain(timeout=poll_s)


def _status_payload(coordinator: ThermalStateCoordinator) -> dict[str, Any]:
    return {
        "status": coordinator.status.value,
        "installed_version": coordinator.installed_version,
        "latest_version": coordinator.latest_version,
        "service_running": coordinator.is_service_running,
        "onboarding_completed": coordinator.has_completed_onboarding,
    }


def _reading_payload(reading: TelemetryReading, coordinator: ThermalStateCoordinator) -> dict[str, Any]:
    cfg = coordinator.config
    unit = TemperatureUnit(cfg.ui.temperature_unit)
    level = classify_temperature(
        reading.cpu_temp_c,
        cfg.thresholds.low_c,
        cfg.thresholds.high_c,
        cfg.thresholds.critical_c,
    )
    return {
        "cpu_temp": round(unit.convert(reading.cpu_temp_c), 1),
        "gpu_temp": round(unit.convert(reading.gpu_temp_c), 1),
        "unit": unit.symbol,
        "cpu_usage": round(reading.cpu_usage_percent, 1),
        "fan_speed": reading.fan_speed_rpm,
        "thermal_pressure": reading.thermal_pressure,
        "level": level.value,
        "source": reading.source.value,
        "synthetic_fields": sorted(reading.synthetic_fields),
    }


def _finish(coordinator: ThermalStateCoordinator, result: OperationResult) -> int:
    _settle(coordinator)
    payload = asdict(result)
    payload.update(_status_payload(coordinator))
    _print_json(payload)
    return 0 if result.succeeded else 1


def cmd_status(_args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    try:
        coordinator.main.run_until(coordinator.refresh_status())
        _print_json(_status_payload(coordinator))
    finally:
        coordinator.close()
    return 0


def cmd_install(_args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    coordinator.set_observer(lambda: _log_progress(coordinator))
    try:
        result = coordinator.main.run_until(coordinator.install())
        return _finish(coordinator, result)
    finally:
        coordinator.close()


def cmd_upgrade(_args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    coordinator.set_observer(lambda: _log_progress(coordinator))
    try:
        result = coordinator.main.run_until(coordinator.upgrade())
        return _finish(coordinator, result)
    finally:
        coordinator.close()


def _log_progress(coordinator: ThermalStateCoordinator) -> None:
    if coordinator.is_installing and coordinator.install_progress:
        print(coordinator.install_progress, file=sys.stderr)
        logger.info(coordinator.install_progress, extra={"event": "install_progress"})


def cmd_toggle_service(_args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    try:
        coordinator.main.run_until(coordinator.refresh_status())
        if coordinator.status in (PackageStatus.NOT_PRESENT, PackageStatus.PRESENT_NO_TOOLSET):
            _print_json({"succeeded": False, "message": "Toolset is not installed", **_status_payload(coordinator)})
            return 1
        result = coordinator.main.run_until(coordinator.toggle_service())
        payload = asdict(result)
        payload["service_running"] = coordinator.is_service_running
        _print_json(payload)
        return 0 if result.succeeded else 1
    finally:
        coordinator.close()


def cmd_power_mode(args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    try:
        mode = parse_power_mode(args.mode)
        future = coordinator.set_power_mode(mode)
        issued = future is not None
        if future is not None:
            future.result()
        _print_json({
            "requested": coordinator.requested_power_mode.value,
            "confirmed": None,
            "command_issued": issued,
        })
    finally:
        coordinator.close()
    return 0


def _sample_loop(coordinator: ThermalStateCoordinator, count: int, emit) -> None:
    seen = 0
    last: TelemetryReading | None = None

    def on_update() -> None:
        nonlocal seen, last
        reading = coordinator.telemetry
        # The observer also fires on status changes.
        if reading is last:
            return
        last = reading
        seen += 1
        emit(reading)

    coordinator.start_sampling(on_update)
    try:
        while count <= 0 or seen < count:
            coordinator.main.drain(timeout=0.25)
    except KeyboardInterrupt:
        pass
    finally:
        coordinator.stop_sampling()


def cmd_monitor(args: argparse.Namespace) -> int:
    cfg = load_config()
    if args.unit:
        cfg.ui.temperature_unit = args.unit
    coordinator = build_coordinator(cfg)
    if args.interval:
        coordinator.interval_s = max(1.0, float(args.interval))
    try:
        _sample_loop(coordinator, args.count, lambda r: print(json.dumps(_reading_payload(r, coordinator), sort_keys=True)))
    finally:
        coordinator.close()
    return 0


def cmd_run(_args: argparse.Namespace) -> int:
    coordinator = _coordinator()
    install_crash_hooks()

    def emit(reading: TelemetryReading) -> None:
        payload = _reading_payload(reading, coordinator)
        if payload["level"] in ("high", "critical"):
            logger.warning("temperature %s: %s", payload["level"], payload["cpu_temp"], extra={"event": "temperature_alert"})

    try:
        coordinator.main.run_until(coordinator.refresh_status())
        logger.info("agent started with status %s", coordinator.status.value, extra={"event": "agent_started"})
        _sample_loop(coordinator, 0, emit)
    finally:
        coordinator.close()
    return 0


def cmd_launch_at_login(args: argparse.Namespace) -> int:
    cfg = load_config()
    enabled = args.state == "on"
    path = set_launch_at_login(enabled, command=args.command)
    cfg.startup.launch_at_login = enabled
    save_config(cfg)
    _print_json({"launch_at_login": enabled, "path": str(path)})
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    cfg = load_config()
    changed = False
    if args.unit:
        cfg.ui.temperature_unit = args.unit
        changed = True
    if args.appearance:
        cfg.ui.appearance = args.appearance
        changed = True
    for name in ("low", "high", "critical"):
        value = getattr(args, name)
        if value is not None:
            setattr(cfg.thresholds, f"{name}_c", float(value))
            changed = True
    if changed:
        save_config(cfg)
        cfg = load_config()
    _print_json(asdict(cfg))
    return 0


def cmd_doctor(_args: argparse.Namespace) -> int:
    _print_json(build_doctor_payload(load_config()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="macbook-cooler", description="MacBook Cooler agent and tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run the agent until interrupted").set_defaults(func=cmd_run)
    sub.add_parser("status", help="Probe package manager and toolset status").set_defaults(func=cmd_status)
    sub.add_parser("install", help="Add tap, install toolset and start its service").set_defaults(func=cmd_install)
    sub.add_parser("upgrade", help="Upgrade the toolset").set_defaults(func=cmd_upgrade)
    sub.add_parser("toggle-service", help="Start or stop the background service").set_defaults(func=cmd_toggle_service)

    power_cmd = sub.add_parser("power-mode", help="Request a power mode")
    power_cmd.add_argument("mode", choices=["auto", "low", "normal", "high"])
    power_cmd.set_defaults(func=cmd_power_mode)

    monitor_cmd = sub.add_parser("monitor", help="Print telemetry readings")
    monitor_cmd.add_argument("--count", type=int, default=1, help="Readings to print (0 = until interrupted)")
    monitor_cmd.add_argument("--interval", type=float, default=None, help="Seconds between readings")
    monitor_cmd.add_argument("--unit", choices=list(TEMPERATURE_UNITS), default=None)
    monitor_cmd.set_defaults(func=cmd_monitor)

    login_cmd = sub.add_parser("launch-at-login", help="Enable or disable starting the agent at login")
    login_cmd.add_argument("state", choices=["on", "off"])
    login_cmd.add_argument("--command", default=None, help="Command the login item runs")
    login_cmd.set_defaults(func=cmd_launch_at_login)

    settings_cmd = sub.add_parser("settings", help="Show or change persisted settings")
    settings_cmd.add_argument("--unit", choices=list(TEMPERATURE_UNITS), default=None)
    settings_cmd.add_argument("--appearance", choices=list(APPEARANCES), default=None)
    settings_cmd.add_argument("--low", type=float, default=None, help="Low threshold in Celsius")
    settings_cmd.add_argument("--high", type=float, default=None, help="High threshold in Celsius")
    settings_cmd.add_argument("--critical", type=float, default=None, help="Critical threshold in Celsius")
    settings_cmd.set_defaults(func=cmd_settings)

    sub.add_parser("doctor", help="Print toolset layout and settings diagnostics").set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(console=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
