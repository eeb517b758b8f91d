"""Package-manager driven toolset detection, install and service control."""

from .layout import ToolsetLayout, brew_candidates, resolve_layout
from .models import OperationResult, PackageStatus, ProbeResult, begin_check, complete_check
from .orchestrator import InstallationOrchestrator, Step
from .power import PowerMode, parse_power_mode, power_command
from .probe import PackageStatusProbe, parse_installed_version, parse_service_running
from .runner import CommandRunner
from .versions import is_outdated, normalize_version

__all__ = [
    "CommandRunner",
    "InstallationOrchestrator",
    "OperationResult",
    "PackageStatus",
    "PackageStatusProbe",
    "PowerMode",
    "ProbeResult",
    "Step",
    "ToolsetLayout",
    "begin_check",
    "brew_candidates",
    "complete_check",
    "is_outdated",
    "normalize_version",
    "parse_installed_version",
    "parse_power_mode",
    "parse_service_running",
    "power_command",
    "resolve_layout",
]
