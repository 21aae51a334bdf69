"""Checklist timer with inactivity tracking."""

import time
from typing import Callable

INACTIVITY_THRESHOLD_SECONDS = 5 * 60
WARNING_RATIO = 0.8


def format_duration(total_seconds: float) -> str:
    """Format seconds as mm:ss (minutes keep growing past 59)."""
    seconds = max(0, int(total_seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class ChecklistTimer:
    """Measures how long a checklist takes and whether the user went idle.

    The clock is injectable so tests can drive time explicitly. An idle
    gap of five minutes or more between activities costs the focus bonus
    for the rest of the run.
    """

    def __init__(
        self,
        estimated_minutes: int,
        clock: Callable[[], float] = time.monotonic,
        inactivity_threshold: float = INACTIVITY_THRESHOLD_SECONDS,
    ):
        self.estimated_minutes = estimated_minutes
        self.inactivity_threshold = inactivity_threshold
        self._clock = clock
        self._started_at: float | None = None
        self._stopped_at: float | None = None
        self._last_activity: float | None = None
        self._penalized = False

    @classmethod
    def restore(
        cls,
        estimated_minutes: int,
        elapsed_seconds: float,
        had_inactivity_penalty: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ChecklistTimer":
        """Rebuild a running timer from a client-reported elapsed time."""
        timer = cls(estimated_minutes, clock=clock)
        now = clock()
        timer._started_at = now - max(0.0, elapsed_seconds)
        timer._last_activity = now
        timer._penalized = had_inactivity_penalty
        return timer

    @property
    def estimated_seconds(self) -> int:
        return self.estimated_minutes * 60

    @property
    def is_running(self) -> bool:
        return self._started_at is not None and self._stopped_at is None

    def start(self) -> None:
        now = self._clock()
        self._started_at = now
        self._stopped_at = None
        self._last_activity = now
        self._penalized = False

    def record_activity(self) -> None:
        """Note a user interaction, closing the current idle gap."""
        if not self.is_running:
            return
        self._check_idle()
        self._last_activity = self._clock()

    def stop(self) -> float:
        """Stop the timer and return elapsed seconds."""
        if self.is_running:
            self._check_idle()
            self._stopped_at = self._clock()
        return self.elapsed_seconds

    def _check_idle(self) -> None:
        if self.idle_seconds >= self.inactivity_threshold:
            self._penalized = True

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return end - self._started_at

    @property
    def idle_seconds(self) -> float:
        """Length of the current idle gap (zero once stopped)."""
        if not self.is_running or self._last_activity is None:
            return 0.0
        return self._clock() - self._last_activity

    @property
    def had_inactivity_penalty(self) -> bool:
        if self.is_running:
            self._check_idle()
        return self._penalized

    @property
    def progress(self) -> float:
        """Elapsed time as a fraction of the estimate."""
        if self.estimated_seconds <= 0:
            return 1.0
        return self.elapsed_seconds / self.estimated_seconds

    @property
    def is_overtime(self) -> bool:
        return self.elapsed_seconds > self.estimated_seconds

    @property
    def in_warning_zone(self) -> bool:
        return self.progress > WARNING_RATIO

    @property
    def speed_bonus_eligible(self) -> bool:
        return self.elapsed_seconds <= self.estimated_seconds

    @property
    def focus_bonus_eligible(self) -> bool:
        return not self.had_inactivity_penalty

    def display(self) -> str:
        return format_duration(self.elapsed_seconds)
