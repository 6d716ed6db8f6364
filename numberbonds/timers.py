"""Cancellable one-shot and periodic timers.

ThreadScheduler runs callbacks on daemon threads but serializes them through a
single lock, so game state is only ever touched by one callback at a time.
ManualScheduler is a virtual clock for tests and headless runs.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


# ── threads ──────────────────────────────────────────────────────────

class _ThreadTimer(threading.Thread):
    def __init__(self, delay: float, callback: Callable[[], None],
                 lock: threading.RLock, repeat: bool):
        super().__init__(daemon=True)
        self.delay = delay
        self.callback = callback
        self.lock = lock
        self.repeat = repeat
        self._stop_event = threading.Event()

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()

    def run(self):
        while not self._stop_event.wait(self.delay):
            with self.lock:
                # cancelled while waiting for the lock
                if self._stop_event.is_set():
                    return
                if not self.repeat:
                    self._stop_event.set()
                self.callback()
            if not self.repeat:
                return


class ThreadScheduler:
    """Real-time scheduler. Hold ``lock`` while calling into the engine from other threads."""

    def __init__(self):
        self.lock = threading.RLock()

    def time(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ThreadTimer:
        timer = _ThreadTimer(delay, callback, self.lock, repeat=False)
        timer.start()
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ThreadTimer:
        timer = _ThreadTimer(interval, callback, self.lock, repeat=True)
        timer.start()
        return timer


# ── virtual clock ────────────────────────────────────────────────────

_EPSILON = 1e-9


class _ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None], interval: float | None, seq: int):
        self.due = due
        self.callback = callback
        self.interval = interval
        self.seq = seq
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler:
    """Deterministic scheduler: time moves only when ``advance`` is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self.now + delay, callback, None, next(self._seq))
        self._timers.append(timer)
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self.now + interval, callback, interval, next(self._seq))
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if t.active)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due on the way."""
        target = self.now + seconds
        while True:
            self._timers = [t for t in self._timers if t.active]
            due = [t for t in self._timers if t.due <= target + _EPSILON]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = max(self.now, timer.due)
            if timer.interval is None:
                timer.cancel()
            else:
                timer.due += timer.interval
            timer.callback()
        self.now = target
