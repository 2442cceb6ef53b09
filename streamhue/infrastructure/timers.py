"""
STREAMHUE - Timer Abstraction

Revert timers behind a factory so tests can drive time by hand.
"""

import threading
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence


class Timer(Protocol):
    """A one-shot timer."""

    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


class TimerFactory(Protocol):
    """Protocol for creating timers and reading the matching clock."""

    def create(self, interval: float, function: Callable[..., Any], args: Sequence[Any] = ()) -> Timer:
        """Create an unstarted timer calling function(*args) after interval seconds."""
        ...

    def now(self) -> float:
        """Current time on the clock the timers run against."""
        ...


class ThreadingTimerFactory:
    """Real timers using threading.Timer and the monotonic clock."""

    def create(self, interval: float, function: Callable[..., Any], args: Sequence[Any] = ()) -> Timer:
        timer = threading.Timer(interval, function, args=list(args))
        timer.daemon = True
        return timer

    def now(self) -> float:
        return time.monotonic()


class ManualTimer:
    """Timer fired by ManualTimerFactory.advance()."""

    def __init__(self, factory: "ManualTimerFactory", interval: float, function, args):
        self._factory = factory
        self.interval = interval
        self.function = function
        self.args = tuple(args)
        self.deadline: Optional[float] = None
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.deadline = self._factory.now() + self.interval

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback now, regardless of deadline or cancellation."""
        self.fired = True
        self.function(*self.args)


class ManualTimerFactory:
    """Mock timer factory for testing. Time only moves on advance()."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: List[ManualTimer] = []
        self._lock = threading.Lock()

    def create(self, interval: float, function: Callable[..., Any], args: Sequence[Any] = ()) -> ManualTimer:
        timer = ManualTimer(self, interval, function, args)
        with self._lock:
            self._timers.append(timer)
        return timer

    def now(self) -> float:
        return self._now

    @property
    def timers(self) -> List[ManualTimer]:
        with self._lock:
            return list(self._timers)

    def pending(self) -> List[ManualTimer]:
        """Started timers that have neither fired nor been cancelled."""
        return [
            t for t in self.timers if t.deadline is not None and not t.cancelled and not t.fired
        ]

    def advance(self, seconds: float) -> None:
        """
        Move the clock forward, firing due timers in deadline order.

        Callbacks run at their own deadline, so timers they create are
        measured from that moment.
        """
        target = self._now + seconds
        while True:
            due = [t for t in self.pending() if t.deadline <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.deadline)
            self._now = max(self._now, timer.deadline)
            timer.fire()
        self._now = target
