"""Toolset presence, version and service-state detection."""

from __future__ import annotations

import json
import logging
import os
from typing import Sequence

from .layout import DEFAULT_BREW_PATHS, Exists, ToolsetLayout, brew_candidates, resolve_layout
from .models import PackageStatus, ProbeResult
from .runner import CommandRunner
from .versions import ZERO_VERSION, is_outdated, normalize_version


logger = logging.getLogger(__name__)

DEFAULT_FORMULA = "macbook-cooler"
LATEST_VERSION = "1.0.0"


def parse_installed_version(text: str) -> str:
    """Read ``formulae[0].versions.stable`` from ``brew info --json=v2`` output."""
    try:
        payload = json.loads(text)
        stable = payload["formulae"][0]["versions"]["stable"]
    except (ValueError, KeyError, IndexError, TypeError):
        return ZERO_VERSION
    if not isinstance(stable, str):
        return ZERO_VERSION
    return normalize_version(stable)


def parse_service_running(output: str, formula: str) -> bool:
    for line in output.splitlines():
        if formula in line and "started" in line:
            return True
    return False


class PackageStatusProbe:
    """Stateless read-only probe; each call re-reads the filesystem and package manager."""

    def __init__(
        self,
        runner: CommandRunner,
        formula: str = DEFAULT_FORMULA,
        latest_version: str = LATEST_VERSION,
        brew_paths: Sequence[str] = DEFAULT_BREW_PATHS,
        exists: Exists = os.path.isfile,
    ) -> None:
        self.runner = runner
        self.formula = formula
        self.latest_version = latest_version
        self.brew_paths = tuple(brew_paths)
        self.exists = exists

    def layout(self) -> ToolsetLayout | None:
        return resolve_layout(brew_candidates(self.brew_paths), exists=self.exists)

    def probe(self) -> ProbeResult:
        layout = self.layout()
        if layout is None:
            return ProbeResult(status=PackageStatus.NOT_PRESENT)

        if not self.exists(str(layout.thermal_monitor_path)):
            return ProbeResult(status=PackageStatus.PRESENT_NO_TOOLSET)

        version = self.installed_version(layout)
        if is_outdated(version, self.latest_version):
            status = PackageStatus.TOOLSET_OUTDATED
        else:
            status = PackageStatus.TOOLSET_CURRENT

        return ProbeResult(
            status=status,
            installed_version=version,
            service_running=self.service_running(layout),
        )

    def installed_version(self, layout: ToolsetLayout) -> str:
        result = self.runner.run(str(layout.brew_path), ["info", "--json=v2", self.formula], merge_stderr=False)
        if not result.succeeded:
            logger.info("version query failed", extra={"event": "version_query_failed"})
            return ZERO_VERSION
        return parse_installed_version(result.message)

    def service_running(self, layout: ToolsetLayout | None = None) -> bool:
        layout = layout or self.layout()
        if layout is None:
            return False
        result = self.runner.run(str(layout.brew_path), ["services", "list"], merge_stderr=False)
        if not result.succeeded:
            return False
        return parse_service_running(result.message, self.formula)
