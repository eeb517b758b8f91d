"""Agent state owner composing status probing, installs, service control and sampling."""

from __future__ import annotations

import functools
import logging
import os
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable

from cooler_telemetry import EMPTY_READING, TelemetryReading, TelemetrySampler
from cooler_toolset import (
    CommandRunner,
    InstallationOrchestrator,
    OperationResult,
    PackageStatus,
    PackageStatusProbe,
    PowerMode,
    ProbeResult,
    begin_check,
    complete_check,
    power_command,
)
from cooler_toolset.power import SUDO_PATH

from .config import AppConfig
from .dispatch import MainContext
from .scheduler import PeriodicTask, Scheduler


logger = logging.getLogger(__name__)

Observer = Callable[[], None]


class ThermalStateCoordinator:
    """Owns status, service state, telemetry and the sampling timer.

    Public operations return immediately. External calls run on ``executor`` and
    their results are applied by callables posted to ``main``; every attribute
    below is written only from there. Returned futures resolve once the result
    has been applied.
    """

    def __init__(
        self,
        probe: PackageStatusProbe,
        orchestrator: InstallationOrchestrator,
        sampler: TelemetrySampler,
        runner: CommandRunner,
        main: MainContext | None = None,
        executor: Executor | None = None,
        scheduler: Scheduler | None = None,
        config: AppConfig | None = None,
        save: Callable[[AppConfig], Any] | None = None,
        interval_s: float | None = None,
    ) -> None:
        self._probe = probe
        self._orchestrator = orchestrator
        self._sampler = sampler
        self._runner = runner
        self._main = main or MainContext()
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="cooler-worker")
        self._scheduler = scheduler
        self.config = config or AppConfig()
        self._save = save
        self.interval_s = interval_s if interval_s is not None else self.config.sampling.interval_s

        self._status = PackageStatus.CHECKING
        self._installed_version = ""
        self._service_running = False
        self._telemetry: TelemetryReading = EMPTY_READING
        self._requested_power_mode = PowerMode.AUTOMATIC
        self._is_installing = False
        self._install_progress = ""

        self._observer: Observer | None = None
        self._task: PeriodicTask | None = None
        self._session: threading.Event | None = None

    # -- observed state ------------------------------------------------------

    @property
    def status(self) -> PackageStatus:
        return self._status

    @property
    def installed_version(self) -> str:
        return self._installed_version

    @property
    def latest_version(self) -> str:
        return self._probe.latest_version

    @property
    def is_service_running(self) -> bool:
        return self._service_running

    @property
    def telemetry(self) -> TelemetryReading:
        return self._telemetry

    @property
    def requested_power_mode(self) -> PowerMode:
        return self._requested_power_mode

    @property
    def confirmed_power_mode(self) -> PowerMode | None:
        # No query command exists for the active power mode.
        return None

    @property
    def is_installing(self) -> bool:
        return self._is_installing

    @property
    def install_progress(self) -> str:
        return self._install_progress

    @property
    def has_completed_onboarding(self) -> bool:
        return self.config.onboarding.completed

    @property
    def is_sampling(self) -> bool:
        return self._task is not None

    @property
    def main(self) -> MainContext:
        return self._main

    def set_observer(self, observer: Observer | None) -> None:
        self._observer = observer

    # -- plumbing ------------------------------------------------------------

    def _notify(self) -> None:
        if self._observer is not None:
            self._observer()

    def _dispatch(
        self,
        work: Callable[[], Any],
        apply: Callable[[Any], Any],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> Future:
        future: Future = Future()

        def finish_ok(value: Any) -> None:
            try:
                future.set_result(apply(value))
            except Exception as exc:
                logger.exception("applying result failed", extra={"event": "apply_failed"})
                future.set_exception(exc)

        def finish_err(exc: BaseException) -> None:
            if on_error is not None:
                on_error(exc)
            future.set_exception(exc)

        def job() -> None:
            try:
                value = work()
            except Exception as exc:
                self._main.post(functools.partial(finish_err, exc))
                return
            self._main.post(functools.partial(finish_ok, value))

        self._executor.submit(job)
        return future

    def _set_status(self, status: PackageStatus) -> None:
        if status is not self._status:
            logger.info(
                "toolset status %s -> %s",
                self._status.value,
                status.value,
                extra={"event": "status_changed"},
            )
        self._status = status
        self._notify()

    def _persist(self) -> None:
        if self._save is not None:
            self._save(self.config)

    # -- status --------------------------------------------------------------

    def refresh_status(self) -> Future:
        self._set_status(begin_check(self._status))
        return self._dispatch(self._probe.probe, self._apply_probe, on_error=self._probe_failed)

    def _apply_probe(self, result: ProbeResult) -> PackageStatus:
        self._installed_version = result.installed_version
        if result.service_running is not None:
            self._service_running = result.service_running
        self._set_status(complete_check(self._status, result.status))
        return self._status

    def _probe_failed(self, exc: BaseException) -> None:
        logger.error("status probe failed: %s", exc, extra={"event": "probe_failed"})
        self._set_status(complete_check(self._status, PackageStatus.NOT_PRESENT))

    # -- install / upgrade / service ----------------------------------------

    def _post_progress(self, label: str) -> None:
        self._main.post(functools.partial(self._set_progress, label))

    def _set_progress(self, label: str) -> None:
        if not self._is_installing:
            return
        self._install_progress = label
        self._notify()

    def _begin_operation(self, label: str) -> None:
        self._is_installing = True
        self._install_progress = label
        self._notify()

    def _end_operation(self) -> None:
        self._is_installing = False
        self._install_progress = ""
        self._notify()

    def install(self) -> Future:
        self._begin_operation("Adding tap...")
        return self._dispatch(
            lambda: self._orchestrator.install(progress=self._post_progress),
            self._finish_install,
            on_error=lambda _exc: self._conclude_install(),
        )

    def _finish_install(self, result: OperationResult) -> OperationResult:
        self._conclude_install()
        return result

    def _conclude_install(self) -> None:
        self._end_operation()
        self.config.onboarding.completed = True
        try:
            self._persist()
        except Exception:
            logger.exception("saving settings failed", extra={"event": "config_save_failed"})
        self.refresh_status()

    def upgrade(self) -> Future:
        self._begin_operation(f"Upgrading {self._orchestrator.formula}...")
        return self._dispatch(
            lambda: self._orchestrator.upgrade(progress=self._post_progress),
            self._finish_upgrade,
            on_error=lambda _exc: self._conclude_upgrade(),
        )

    def _finish_upgrade(self, result: OperationResult) -> OperationResult:
        self._conclude_upgrade()
        return result

    def _conclude_upgrade(self) -> None:
        self._end_operation()
        self.refresh_status()

    def toggle_service(self) -> Future:
        running = self._service_running

        def work() -> tuple[OperationResult, bool]:
            result = self._orchestrator.toggle_service(running)
            return result, self._probe.service_running()

        return self._dispatch(work, self._apply_toggle)

    def _apply_toggle(self, outcome: tuple[OperationResult, bool]) -> OperationResult:
        result, running = outcome
        self._service_running = running
        self._notify()
        return result

    # -- power mode ----------------------------------------------------------

    def set_power_mode(self, mode: PowerMode) -> Future | None:
        """Record the requested mode and fire the command without confirming it."""
        self._requested_power_mode = mode
        logger.info("power mode requested: %s", mode.value, extra={"event": "power_mode_requested"})
        self._notify()

        layout = self._probe.layout()
        if layout is None or not self._probe.exists(str(layout.thermal_power_path)):
            return None

        future = self._executor.submit(self._runner.run, SUDO_PATH, power_command(mode, layout))
        future.add_done_callback(functools.partial(_log_power_result, mode))
        return future

    # -- sampling ------------------------------------------------------------

    def start_sampling(self, on_update: Observer | None = None) -> None:
        self.stop_sampling()
        if on_update is not None:
            self._observer = on_update

        session = threading.Event()
        self._session = session
        self._sample(session)

        task = PeriodicTask(self.interval_s, functools.partial(self._sample, session), self._scheduler)
        self._task = task
        task.start()

    def stop_sampling(self) -> None:
        if self._session is not None:
            self._session.set()
            self._session = None
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _sample(self, session: threading.Event) -> None:
        if session.is_set():
            return

        def apply(reading: TelemetryReading) -> TelemetryReading | None:
            # Results that land after stop_sampling belong to a dead session.
            if session.is_set() or session is not self._session:
                return None
            self._telemetry = reading
            self._notify()
            return reading

        def failed(exc: BaseException) -> None:
            logger.warning("telemetry sample failed: %s", exc, extra={"event": "sample_failed"})

        self._dispatch(self._sampler.sample, apply, on_error=failed)

    def close(self) -> None:
        self.stop_sampling()
        self._executor.shutdown(wait=False)


def _log_power_result(mode: PowerMode, future: Future) -> None:
    result = future.result()
    if not result.succeeded:
        logger.warning(
            "power mode command for %s failed: %s",
            mode.value,
            result.message.strip(),
            extra={"event": "power_mode_failed"},
        )


def build_coordinator(
    cfg: AppConfig,
    runner: CommandRunner | None = None,
    main: MainContext | None = None,
    executor: Executor | None = None,
    scheduler: Scheduler | None = None,
    exists: Callable[[str], bool] = os.path.isfile,
    save: Callable[[AppConfig], Any] | None = None,
) -> ThermalStateCoordinator:
    runner = runner or CommandRunner()
    probe = PackageStatusProbe(
        runner,
        formula=cfg.toolset.formula,
        latest_version=cfg.toolset.latest_version,
        brew_paths=cfg.toolset.brew_paths,
        exists=exists,
    )
    orchestrator = InstallationOrchestrator(runner, probe.layout, formula=cfg.toolset.formula, tap=cfg.toolset.tap)

    def locate_probe() -> Path | None:
        layout = probe.layout()
        return layout.thermal_monitor_path if layout is not None else None

    sampler = TelemetrySampler(runner, locate_probe, exists=exists)
    return ThermalStateCoordinator(
        probe,
        orchestrator,
        sampler,
        runner,
        main=main,
        executor=executor,
        scheduler=scheduler,
        config=cfg,
        save=save,
    )
