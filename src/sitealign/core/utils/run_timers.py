# src/sitealign/core/utils/run_timers.py
import time
from typing import Optional


def format_duration(ms: Optional[float]) -> str:
    """'840ms' below one second, '2.31s' above."""
    if ms is None:
        return "n/a"
    if ms < 1000:
        return f"{int(ms)}ms"
    return f"{ms / 1000:.2f}s"


class RunTimers:
    """
    A simple utility class for measuring elapsed execution time.
    """

    def __init__(self):
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None

    def start(self) -> None:
        """Starts the timer."""
        self._start_time = time.perf_counter()
        self._end_time = None

    def stop(self) -> None:
        """Stops the timer."""
        if self._start_time is not None:
            self._end_time = time.perf_counter()

    @property
    def duration(self) -> float:
        """Returns the elapsed time in seconds."""
        if self._start_time is None:
            return 0.0

        if self._end_time is None:
            # If the timer is still running, return the current duration
            return time.perf_counter() - self._start_time

        return self._end_time - self._start_time

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))

    def __repr__(self) -> str:
        return f"<RunTimers duration={format_duration(self.duration_ms)}>"
