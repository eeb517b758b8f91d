import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "tests"))

from fakes import BREW, INFO_JSON, INTEL_BREW, MONITOR, SERVICES_STARTED, SERVICES_STOPPED, FakeFiles, FakeRunner

from cooler_toolset.models import OperationResult, PackageStatus
from cooler_toolset.probe import PackageStatusProbe, parse_installed_version, parse_service_running


def ok(message=""):
    return OperationResult(succeeded=True, message=message)


class ParseTests(unittest.TestCase):
    def test_installed_version_from_info_json(self):
        self.assertEqual(parse_installed_version(INFO_JSON % "1.2.3"), "1.2.3")

    def test_malformed_info_degrades_to_zero(self):
        for text in ("", "not json", "[]", '{"formulae": []}', '{"formulae": [{"versions": {"stable": 7}}]}'):
            self.assertEqual(parse_installed_version(text), "0.0.0", text)

    def test_service_running_needs_both_tokens_on_one_line(self):
        self.assertTrue(parse_service_running(SERVICES_STARTED, "macbook-cooler"))
        self.assertFalse(parse_service_running(SERVICES_STOPPED, "macbook-cooler"))
        self.assertFalse(parse_service_running("macbook-cooler none\nother-service started\n", "macbook-cooler"))
        self.assertFalse(parse_service_running("", "macbook-cooler"))


class ProbeTests(unittest.TestCase):
    def _probe(self, runner, files):
        return PackageStatusProbe(runner, latest_version="1.0.0", exists=files)

    def test_missing_package_manager_makes_no_calls(self):
        runner = FakeRunner()
        files = FakeFiles(MONITOR)
        result = self._probe(runner, files).probe()
        self.assertEqual(result.status, PackageStatus.NOT_PRESENT)
        self.assertEqual(runner.calls, [])
        self.assertIsNone(result.service_running)

    def test_package_manager_without_toolset(self):
        runner = FakeRunner()
        result = self._probe(runner, FakeFiles(BREW)).probe()
        self.assertEqual(result.status, PackageStatus.PRESENT_NO_TOOLSET)
        self.assertEqual(runner.calls, [])

    def test_secondary_path_is_used_when_primary_missing(self):
        runner = FakeRunner({"info --json=v2 macbook-cooler": ok(INFO_JSON % "1.0.0")})
        files = FakeFiles(INTEL_BREW, "/usr/local/bin/thermal-monitor")
        result = self._probe(runner, files).probe()
        self.assertEqual(result.status, PackageStatus.TOOLSET_CURRENT)
        self.assertEqual(runner.calls[0][0], INTEL_BREW)

    def test_current_toolset_with_running_service(self):
        runner = FakeRunner(
            {
                "info --json=v2 macbook-cooler": ok(INFO_JSON % "1.0.0"),
                "services list": ok(SERVICES_STARTED),
            }
        )
        result = self._probe(runner, FakeFiles(BREW, MONITOR)).probe()
        self.assertEqual(result.status, PackageStatus.TOOLSET_CURRENT)
        self.assertEqual(result.installed_version, "1.0.0")
        self.assertTrue(result.service_running)
        self.assertEqual(runner.commands(), ["info --json=v2 macbook-cooler", "services list"])

    def test_outdated_toolset(self):
        runner = FakeRunner({"info --json=v2 macbook-cooler": ok(INFO_JSON % "0.9.5")})
        result = self._probe(runner, FakeFiles(BREW, MONITOR)).probe()
        self.assertEqual(result.status, PackageStatus.TOOLSET_OUTDATED)
        self.assertFalse(result.service_running)

    def test_failed_version_query_is_treated_as_outdated(self):
        runner = FakeRunner({"info --json=v2 macbook-cooler": OperationResult(succeeded=False, message="Error")})
        result = self._probe(runner, FakeFiles(BREW, MONITOR)).probe()
        self.assertEqual(result.status, PackageStatus.TOOLSET_OUTDATED)
        self.assertEqual(result.installed_version, "0.0.0")

    def test_malformed_json_does_not_raise(self):
        runner = FakeRunner({"info --json=v2 macbook-cooler": ok("{broken")})
        result = self._probe(runner, FakeFiles(BREW, MONITOR)).probe()
        self.assertEqual(result.status, PackageStatus.TOOLSET_OUTDATED)

    def test_failed_service_list_means_not_running(self):
        runner = FakeRunner(
            {
                "info --json=v2 macbook-cooler": ok(INFO_JSON % "1.0.0"),
                "services list": OperationResult(succeeded=False, message=SERVICES_STARTED),
            }
        )
        result = self._probe(runner, FakeFiles(BREW, MONITOR)).probe()
        self.assertFalse(result.service_running)


if __name__ == "__main__":
    unittest.main()
