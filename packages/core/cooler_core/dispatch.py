"""Main-context marshaling: workers post callables, the owning thread drains them."""

from __future__ import annotations

import queue
import time
from concurrent.futures import Future
from typing import Any, Callable


class MainContext:
    """Single-consumer callable queue.

    Shared agent state is only mutated by callables run from ``drain``, so it is
    always written from whichever thread drives this context.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[Callable[[], Any]] = queue.Queue()

    def post(self, fn: Callable[[], Any]) -> None:
        self._queue.put(fn)

    def drain(self, timeout: float | None = None) -> int:
        """Run every queued callable; block up to ``timeout`` for the first one."""
        ran = 0
        try:
            fn = self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
            while True:
                fn()
                ran += 1
                fn = self._queue.get_nowait()
        except queue.Empty:
            pass
        return ran

    def run_until(self, future: Future, poll_s: float = 0.12, timeout: float | None = None) -> Any:
        deadline = None if timeout is None else time.monotonic() + timeout
        while not future.done():
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError("operation did not finish in time")
            self.drain(timeout=poll_s)
        return future.result()
