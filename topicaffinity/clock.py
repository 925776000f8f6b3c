import time
from abc import ABC, abstractmethod
from threading import RLock


MS_PER_MINUTE = 60_000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


class Clock(ABC):
    """
    Single source of "now" for every scoring component.

    Components never read the wall clock directly; they ask the injected
    clock so that tests can pin and advance time deterministically.
    """

    @abstractmethod
    def now_ms(self) -> int:
        """Current time as epoch milliseconds."""
        raise NotImplementedError


class SystemClock(Clock):

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """Settable clock for tests and replay."""

    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)
        self._lock = RLock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def set(self, epoch_ms: int) -> None:
        with self._lock:
            self._now = int(epoch_ms)

    def advance(self, days: float = 0, hours: float = 0, minutes: float = 0) -> int:
        delta = days * MS_PER_DAY + hours * MS_PER_HOUR + minutes * MS_PER_MINUTE
        with self._lock:
            self._now += int(delta)
            return self._now
