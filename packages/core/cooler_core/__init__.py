"""Core agent services: settings, logging, startup, dispatch, sampling and the coordinator."""

from .config import AppConfig, load_config, save_config
from .coordinator import ThermalStateCoordinator, build_coordinator
from .diagnostics import build_doctor_payload
from .dispatch import MainContext
from .scheduler import PeriodicTask, ThreadingScheduler
from .startup import set_launch_at_login

__all__ = [
    "AppConfig",
    "MainContext",
    "PeriodicTask",
    "ThermalStateCoordinator",
    "ThreadingScheduler",
    "build_coordinator",
    "build_doctor_payload",
    "load_config",
    "save_config",
    "set_launch_at_login",
]
