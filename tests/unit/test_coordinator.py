import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "tests"))

from fakes import (
    BREW,
    INFO_JSON,
    MONITOR,
    POWER,
    SERVICES_STARTED,
    SERVICES_STOPPED,
    DeferredExecutor,
    FakeFiles,
    FakeRunner,
    ImmediateContext,
    InlineExecutor,
    ManualScheduler,
)

from cooler_core.config import AppConfig
from cooler_core.coordinator import ThermalStateCoordinator
from cooler_telemetry.models import EMPTY_READING, TelemetryReading
from cooler_toolset import InstallationOrchestrator, OperationResult, PackageStatus, PackageStatusProbe, PowerMode


def ok(message=""):
    return OperationResult(succeeded=True, message=message)


def fail(message):
    return OperationResult(succeeded=False, message=message)


class FakeSampler:
    def __init__(self):
        self.calls = 0

    def sample(self):
        self.calls += 1
        return TelemetryReading(
            cpu_temp_c=50.0 + self.calls,
            gpu_temp_c=45.0,
            cpu_usage_percent=12.5,
            fan_speed_rpm=1800,
            thermal_pressure="Nominal",
        )


class ExplodingProbe(PackageStatusProbe):
    def probe(self):
        raise RuntimeError("disk vanished")


def build(runner, files, executor=None, scheduler=None, sampler=None, saved=None, probe_cls=PackageStatusProbe, save=None):
    cfg = AppConfig()
    probe = probe_cls(runner, exists=files)
    orchestrator = InstallationOrchestrator(runner, probe.layout)
    return ThermalStateCoordinator(
        probe,
        orchestrator,
        sampler or FakeSampler(),
        runner,
        main=ImmediateContext(),
        executor=executor or InlineExecutor(),
        scheduler=scheduler or ManualScheduler(),
        config=cfg,
        save=save or (saved.append if saved is not None else None),
        interval_s=3.0,
    )


def installed_runner(version="1.0.0", services=SERVICES_STARTED, **extra):
    responses = {
        "info --json=v2 macbook-cooler": ok(INFO_JSON % version),
        "services list": ok(services),
    }
    responses.update(extra)
    return FakeRunner(responses)


class StatusTests(unittest.TestCase):
    def test_initial_status_is_checking(self):
        coordinator = build(FakeRunner(), FakeFiles())
        self.assertIs(coordinator.status, PackageStatus.CHECKING)
        self.assertEqual(coordinator.telemetry, EMPTY_READING)

    def test_missing_package_manager(self):
        runner = FakeRunner()
        coordinator = build(runner, FakeFiles())
        future = coordinator.refresh_status()
        self.assertEqual(future.result(), PackageStatus.NOT_PRESENT)
        self.assertIs(coordinator.status, PackageStatus.NOT_PRESENT)
        self.assertEqual(runner.calls, [])

    def test_checking_is_entered_before_probe_runs(self):
        executor = DeferredExecutor()
        coordinator = build(installed_runner(), FakeFiles(BREW, MONITOR), executor=executor)
        future = coordinator.refresh_status()
        self.assertIs(coordinator.status, PackageStatus.CHECKING)
        self.assertFalse(future.done())
        executor.run_pending()
        self.assertIs(coordinator.status, PackageStatus.TOOLSET_CURRENT)
        self.assertTrue(future.done())

    def test_refresh_is_idempotent(self):
        coordinator = build(installed_runner(version="0.5.0"), FakeFiles(BREW, MONITOR))
        first = coordinator.refresh_status().result()
        second = coordinator.refresh_status().result()
        self.assertEqual(first, second)
        self.assertIs(second, PackageStatus.TOOLSET_OUTDATED)
        self.assertEqual(coordinator.installed_version, "0.5.0")

    def test_probe_reports_service_state(self):
        coordinator = build(installed_runner(), FakeFiles(BREW, MONITOR))
        coordinator.refresh_status()
        self.assertTrue(coordinator.is_service_running)

    def test_status_changes_notify_observer(self):
        coordinator = build(FakeRunner(), FakeFiles())
        seen = []
        coordinator.set_observer(lambda: seen.append(coordinator.status))
        coordinator.refresh_status()
        self.assertEqual(seen, [PackageStatus.CHECKING, PackageStatus.NOT_PRESENT])

    def test_probe_exception_never_leaves_checking(self):
        coordinator = build(FakeRunner(), FakeFiles(BREW), probe_cls=ExplodingProbe)
        future = coordinator.refresh_status()
        self.assertIsInstance(future.exception(), RuntimeError)
        self.assertIs(coordinator.status, PackageStatus.NOT_PRESENT)


class InstallTests(unittest.TestCase):
    def test_install_failure_short_circuits_and_refreshes(self):
        saved = []
        runner = FakeRunner({"install macbook-cooler": fail("boom")})
        coordinator = build(runner, FakeFiles(BREW), saved=saved)
        result = coordinator.install().result()

        self.assertFalse(result.succeeded)
        self.assertEqual(result.message, "Failed to install: boom")
        self.assertNotIn("services start macbook-cooler", runner.commands())
        self.assertFalse(coordinator.is_installing)
        self.assertIs(coordinator.status, PackageStatus.PRESENT_NO_TOOLSET)
        self.assertTrue(coordinator.has_completed_onboarding)
        self.assertEqual(len(saved), 1)

    def test_install_refreshes_even_when_settings_cannot_be_saved(self):
        runner = FakeRunner({"install macbook-cooler": fail("boom")})

        def read_only(_cfg):
            raise OSError("read-only fs")

        coordinator = build(runner, FakeFiles(BREW, MONITOR), save=read_only)
        result = coordinator.install().result()

        self.assertFalse(result.succeeded)
        self.assertIn("info --json=v2 macbook-cooler", runner.commands())
        self.assertIsNot(coordinator.status, PackageStatus.CHECKING)
        self.assertTrue(coordinator.has_completed_onboarding)

    def test_install_reports_progress_while_running(self):
        runner = installed_runner()
        coordinator = build(runner, FakeFiles(BREW, MONITOR))
        labels = []

        def observe():
            if coordinator.is_installing and coordinator.install_progress not in labels:
                labels.append(coordinator.install_progress)

        coordinator.set_observer(observe)
        result = coordinator.install().result()
        self.assertTrue(result.succeeded)
        self.assertEqual(labels, ["Adding tap...", "Installing macbook-cooler...", "Starting service..."])
        self.assertEqual(coordinator.install_progress, "")
        self.assertIs(coordinator.status, PackageStatus.TOOLSET_CURRENT)

    def test_upgrade_succeeds_when_stop_fails(self):
        runner = installed_runner(**{"services stop macbook-cooler": fail("not loaded")})
        coordinator = build(runner, FakeFiles(BREW, MONITOR))
        result = coordinator.upgrade().result()
        self.assertTrue(result.succeeded)
        self.assertFalse(coordinator.is_installing)
        self.assertIs(coordinator.status, PackageStatus.TOOLSET_CURRENT)
        self.assertFalse(coordinator.has_completed_onboarding)


class ServiceToggleTests(unittest.TestCase):
    def test_toggle_trusts_reprobe_over_exit_code(self):
        runner = installed_runner(services=SERVICES_STOPPED)
        coordinator = build(runner, FakeFiles(BREW, MONITOR))
        coordinator.refresh_status()
        self.assertFalse(coordinator.is_service_running)

        result = coordinator.toggle_service().result()
        self.assertTrue(result.succeeded)
        self.assertIn("services start macbook-cooler", runner.commands())
        self.assertFalse(coordinator.is_service_running)

    def test_toggle_picks_up_new_state(self):
        runner = installed_runner(services=SERVICES_STOPPED)
        coordinator = build(runner, FakeFiles(BREW, MONITOR))
        coordinator.refresh_status()
        runner.responses["services list"] = ok(SERVICES_STARTED)
        coordinator.toggle_service()
        self.assertTrue(coordinator.is_service_running)

    def test_failed_toggle_still_reprobes(self):
        runner = installed_runner(**{"services stop macbook-cooler": fail("denied")})
        coordinator = build(runner, FakeFiles(BREW, MONITOR))
        coordinator.refresh_status()
        result = coordinator.toggle_service().result()
        self.assertFalse(result.succeeded)
        self.assertEqual(runner.commands()[-1], "services list")
        self.assertTrue(coordinator.is_service_running)


class PowerModeTests(unittest.TestCase):
    def test_request_is_recorded_without_power_binary(self):
        runner = FakeRunner()
        coordinator = build(runner, FakeFiles(BREW))
        self.assertIsNone(coordinator.set_power_mode(PowerMode.LOW_POWER))
        self.assertIs(coordinator.requested_power_mode, PowerMode.LOW_POWER)
        self.assertIsNone(coordinator.confirmed_power_mode)
        self.assertEqual(runner.calls, [])

    def test_low_power_issues_pmset(self):
        runner = FakeRunner()
        coordinator = build(runner, FakeFiles(BREW, POWER))
        coordinator.set_power_mode(PowerMode.LOW_POWER).result()
        self.assertEqual(runner.calls, [("/usr/bin/sudo", ["-n", "pmset", "-a", "lowpowermode", "1"])])

    def test_automatic_starts_daemon_even_if_command_fails(self):
        runner = FakeRunner(default=fail("sudo: a password is required"))
        coordinator = build(runner, FakeFiles(BREW, POWER))
        coordinator.set_power_mode(PowerMode.AUTOMATIC).result()
        self.assertEqual(runner.calls[0][1], ["-n", POWER, "--daemon"])
        self.assertIs(coordinator.requested_power_mode, PowerMode.AUTOMATIC)


class SamplingTests(unittest.TestCase):
    def test_samples_on_interval(self):
        scheduler = ManualScheduler()
        sampler = FakeSampler()
        coordinator = build(FakeRunner(), FakeFiles(), scheduler=scheduler, sampler=sampler)
        updates = []
        coordinator.start_sampling(lambda: updates.append(coordinator.telemetry))

        self.assertEqual(len(updates), 1)
        scheduler.advance(3.0)
        scheduler.advance(3.0)
        self.assertEqual(len(updates), 3)
        self.assertEqual(coordinator.telemetry.cpu_temp_c, 53.0)

    def test_stop_prevents_further_callbacks(self):
        scheduler = ManualScheduler()
        coordinator = build(FakeRunner(), FakeFiles(), scheduler=scheduler)
        updates = []
        coordinator.start_sampling(lambda: updates.append(1))
        scheduler.advance(3.0)
        coordinator.stop_sampling()

        scheduler.advance(30.0)
        self.assertEqual(len(updates), 2)
        self.assertEqual(scheduler.timers, [])
        self.assertFalse(coordinator.is_sampling)

    def test_late_results_are_dropped_after_stop(self):
        scheduler = ManualScheduler()
        executor = DeferredExecutor()
        sampler = FakeSampler()
        coordinator = build(FakeRunner(), FakeFiles(), executor=executor, scheduler=scheduler, sampler=sampler)
        updates = []
        coordinator.start_sampling(lambda: updates.append(1))
        coordinator.stop_sampling()

        executor.run_pending()
        self.assertEqual(sampler.calls, 1)
        self.assertEqual(updates, [])
        self.assertEqual(coordinator.telemetry, EMPTY_READING)
        self.assertEqual(scheduler.timers, [])

    def test_restart_replaces_previous_session(self):
        scheduler = ManualScheduler()
        coordinator = build(FakeRunner(), FakeFiles(), scheduler=scheduler)
        updates = []
        coordinator.start_sampling(lambda: updates.append(1))
        coordinator.start_sampling(lambda: updates.append(2))
        scheduler.advance(3.0)
        self.assertEqual(updates, [1, 2, 2])
        self.assertEqual(len(scheduler.timers), 1)


if __name__ == "__main__":
    unittest.main()
