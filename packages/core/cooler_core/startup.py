"""Launch-at-login configuration for macOS and Linux desktops."""

from __future__ import annotations

import os
import platform
import plistlib
from pathlib import Path


AGENT_LABEL = "com.macbookcooler.agent"


def _macos_plist_path() -> Path:
    return Path.home() / "Library" / "LaunchAgents" / f"{AGENT_LABEL}.plist"


def _linux_desktop_path(app_name: str) -> Path:
    return Path.home() / ".config" / "autostart" / f"{app_name}.desktop"


def _set_macos_startup(enabled: bool, command: str) -> Path:
    plist = _macos_plist_path()
    if not enabled:
        if plist.exists():
            plist.unlink()
        return plist

    plist.parent.mkdir(parents=True, exist_ok=True)
    plist.write_bytes(
        plistlib.dumps(
            {
                "Label": AGENT_LABEL,
                "ProgramArguments": [command, "run"],
                "RunAtLoad": True,
            }
        )
    )
    return plist


def _set_linux_startup(enabled: bool, app_name: str, command: str) -> Path:
    desktop_file = _linux_desktop_path(app_name)
    if not enabled:
        if desktop_file.exists():
            desktop_file.unlink()
        return desktop_file

    desktop_file.parent.mkdir(parents=True, exist_ok=True)
    desktop_file.write_text(
        f"""[Desktop Entry]
Type=Application
Name={app_name}
Exec={command} run
X-GNOME-Autostart-enabled=true
""",
        encoding="utf-8",
    )
    return desktop_file


def set_launch_at_login(enabled: bool, app_name: str = "macbook-cooler", command: str | None = None) -> Path:
    """Write or remove the login item; returns the path that was touched."""
    cmd = command or os.environ.get("COOLER_CMD", "macbook-cooler")
    if platform.system() == "Darwin":
        return _set_macos_startup(enabled, cmd)
    return _set_linux_startup(enabled, app_name, cmd)
