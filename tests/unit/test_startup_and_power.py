from __future__ import annotations

import plistlib
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "tests"))

import fakes  # noqa: F401

import cooler_core.startup as startup
from cooler_toolset.layout import ToolsetLayout
from cooler_toolset.power import PowerMode, parse_power_mode, power_command


def test_macos_login_item_round_trip(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(startup.platform, "system", lambda: "Darwin")
    monkeypatch.setattr(startup.Path, "home", lambda: tmp_path)

    path = startup.set_launch_at_login(True, command="/usr/local/bin/macbook-cooler")
    data = plistlib.loads(path.read_bytes())
    assert data["Label"] == startup.AGENT_LABEL
    assert data["ProgramArguments"] == ["/usr/local/bin/macbook-cooler", "run"]
    assert data["RunAtLoad"] is True

    startup.set_launch_at_login(False)
    assert not path.exists()


def test_linux_autostart_entry(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(startup.platform, "system", lambda: "Linux")
    monkeypatch.setattr(startup.Path, "home", lambda: tmp_path)
    monkeypatch.setenv("COOLER_CMD", "cooler-test")

    path = startup.set_launch_at_login(True)
    assert "Exec=cooler-test run" in path.read_text(encoding="utf-8")


@pytest.mark.parametrize(
    "text, mode",
    [("auto", PowerMode.AUTOMATIC), ("Low Power", PowerMode.LOW_POWER), ("high", PowerMode.HIGH_PERFORMANCE)],
)
def test_parse_power_mode(text, mode) -> None:
    assert parse_power_mode(text) is mode


def test_parse_power_mode_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        parse_power_mode("turbo")


def test_power_commands() -> None:
    layout = ToolsetLayout(brew_path=Path("/opt/homebrew/bin/brew"), bin_dir=Path("/opt/homebrew/bin"))
    assert power_command(PowerMode.AUTOMATIC, layout) == ["-n", "/opt/homebrew/bin/thermal-power", "--daemon"]
    assert power_command(PowerMode.NORMAL, layout)[-1] == "0"
    assert power_command(PowerMode.HIGH_PERFORMANCE, layout)[-1] == "0"
    assert power_command(PowerMode.LOW_POWER, layout)[-1] == "1"
