"""Ordered package-manager command sequences for install, upgrade and service control."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .layout import BREW_MISSING_MESSAGE, PRIMARY_BREW_PATH, ToolsetLayout
from .models import OperationResult
from .probe import DEFAULT_FORMULA
from .runner import CommandRunner


logger = logging.getLogger(__name__)

DEFAULT_TAP = "nelsojona/macbook-cooler"

ProgressCallback = Callable[[str], None]
LayoutLocator = Callable[[], ToolsetLayout | None]


@dataclass(frozen=True)
class Step:
    name: str
    label: str
    args: tuple[str, ...]
    failure_prefix: str
    required: bool = True


class InstallationOrchestrator:
    """Runs dependent package-manager steps strictly in order.

    Overlapping calls are not queued or rejected here; the coordinator's
    in-progress flag is what callers check before starting another run.
    """

    def __init__(
        self,
        runner: CommandRunner,
        locate: LayoutLocator,
        formula: str = DEFAULT_FORMULA,
        tap: str = DEFAULT_TAP,
    ) -> None:
        self.runner = runner
        self.locate = locate
        self.formula = formula
        self.tap = tap

    def _brew(self, args: Sequence[str]) -> OperationResult:
        layout = self.locate()
        brew = str(layout.brew_path) if layout is not None else PRIMARY_BREW_PATH
        return self.runner.run(brew, list(args), missing_message=BREW_MISSING_MESSAGE)

    def install_steps(self) -> list[Step]:
        return [
            Step("add-source", "Adding tap...", ("tap", self.tap), "Failed to add tap"),
            Step("install", f"Installing {self.formula}...", ("install", self.formula), "Failed to install"),
            Step(
                "start-service",
                "Starting service...",
                ("services", "start", self.formula),
                "Installed, but failed to start service",
                required=False,
            ),
        ]

    def run_steps(self, steps: Sequence[Step], progress: ProgressCallback | None = None) -> OperationResult:
        """Left-to-right reduction: the first failing required step ends the run."""
        progress = progress or (lambda _msg: None)
        caveat: OperationResult | None = None

        for step in steps:
            progress(step.label)
            logger.info("step %s started", step.name, extra={"event": "step_start"})
            result = self._brew(step.args)
            if result.succeeded:
                continue

            message = f"{step.failure_prefix}: {result.message.strip()}"
            logger.warning("step %s failed", step.name, extra={"event": "step_failed"})
            if step.required:
                return OperationResult(succeeded=False, message=message, step=step.name)
            if caveat is None:
                caveat = OperationResult(succeeded=False, message=message, step=step.name, partial=True)

        return caveat or OperationResult(succeeded=True, message="")

    def install(self, progress: ProgressCallback | None = None) -> OperationResult:
        result = self.run_steps(self.install_steps(), progress)
        if result.succeeded:
            return OperationResult(succeeded=True, message="Installation complete!")
        return result

    def upgrade(self, progress: ProgressCallback | None = None) -> OperationResult:
        """Stop, upgrade, start. Only the upgrade step decides the outcome."""
        progress = progress or (lambda _msg: None)
        progress(f"Upgrading {self.formula}...")

        stopped = self._brew(["services", "stop", self.formula])
        if not stopped.succeeded:
            logger.info("service stop before upgrade failed", extra={"event": "upgrade_stop_failed"})

        upgraded = self._brew(["upgrade", self.formula])

        started = self._brew(["services", "start", self.formula])
        if not started.succeeded:
            logger.info("service start after upgrade failed", extra={"event": "upgrade_start_failed"})

        if upgraded.succeeded:
            return OperationResult(succeeded=True, message="Upgrade complete!")
        logger.warning("upgrade failed", extra={"event": "step_failed"})
        return OperationResult(
            succeeded=False,
            message=f"Failed to upgrade: {upgraded.message.strip()}",
            step="upgrade",
        )

    def toggle_service(self, running: bool) -> OperationResult:
        action = "stop" if running else "start"
        result = self._brew(["services", action, self.formula])
        if result.succeeded:
            return OperationResult(succeeded=True, message=result.message, step=f"{action}-service")
        return OperationResult(
            succeeded=False,
            message=f"Failed to {action} service: {result.message.strip()}",
            step=f"{action}-service",
        )
