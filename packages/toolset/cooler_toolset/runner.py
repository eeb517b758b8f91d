"""Blocking external command execution folded into OperationResult values."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Sequence

from .models import OperationResult


logger = logging.getLogger(__name__)


class CommandRunner:
    """Run one program to completion, merging stdout and stderr.

    Every failure (missing binary, spawn error, non-zero exit, timeout) comes back as
    ``succeeded=False``; only the message tells them apart. Nothing is retried.
    """

    def __init__(self, timeout_s: float | None = None) -> None:
        self.timeout_s = timeout_s

    def run(
        self,
        executable: str,
        arguments: Sequence[str] = (),
        missing_message: str | None = None,
        merge_stderr: bool = True,
    ) -> OperationResult:
        if not os.path.isfile(executable):
            return OperationResult(
                succeeded=False,
                message=missing_message or f"Executable not found: {executable}",
            )

        cmd = [executable, *arguments]
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=(subprocess.STDOUT if merge_stderr else subprocess.DEVNULL),
                stdin=subprocess.DEVNULL,
                timeout=self.timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("command timed out: %s", " ".join(cmd), extra={"event": "command_timeout"})
            return OperationResult(succeeded=False, message=f"Timed out after {self.timeout_s}s: {' '.join(cmd)}")
        except OSError as exc:
            logger.warning("command failed to start: %s (%s)", " ".join(cmd), exc, extra={"event": "command_spawn_error"})
            return OperationResult(succeeded=False, message=f"Failed to run {os.path.basename(executable)}: {exc}")

        output = proc.stdout.decode("utf-8", errors="replace") if proc.stdout else ""
        if proc.returncode != 0:
            logger.info(
                "command exited with code %s: %s",
                proc.returncode,
                " ".join(cmd),
                extra={"event": "command_failed"},
            )
        return OperationResult(succeeded=proc.returncode == 0, message=output)
