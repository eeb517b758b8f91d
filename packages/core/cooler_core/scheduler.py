"""Periodic task with synchronous cancellation."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> Cancellable: ...


class ThreadingScheduler:
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> Cancellable:
        timer = threading.Timer(delay_s, fn)
        timer.daemon = True
        timer.start()
        return timer


class PeriodicTask:
    """Re-arms itself every ``interval_s`` until cancelled.

    After ``cancel()`` returns no further tick starts, and a tick that was already
    firing cannot re-arm the timer.
    """

    def __init__(self, interval_s: float, action: Callable[[], None], scheduler: Scheduler | None = None) -> None:
        self.interval_s = interval_s
        self._action = action
        self._scheduler = scheduler or ThreadingScheduler()
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._handle: Cancellable | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        with self._lock:
            if self._cancelled.is_set():
                raise RuntimeError("periodic task already cancelled")
            self._arm()

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self.interval_s, self._fire)

    def _fire(self) -> None:
        with self._lock:
            if self._cancelled.is_set():
                return
            self._arm()
        self._action()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
