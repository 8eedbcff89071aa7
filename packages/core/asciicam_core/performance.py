"""Frame pacing and runtime resource budgeting."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import psutil


class FramePacer:
    """Sleeps out the rest of each frame interval; never speeds a slow loop up."""

    def __init__(
        self,
        frame_rate: float,
        enabled: bool = True,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = 1.0 / frame_rate if enabled and frame_rate > 0 else 0.0
        self._clock = clock
        self._sleep = sleep

    def wait(self, frame_started: float) -> float:
        """Block until ``interval`` has passed since ``frame_started``; returns the sleep."""
        if self.interval <= 0:
            return 0.0
        remaining = self.interval - (self._clock() - frame_started)
        if remaining > 0:
            self._sleep(remaining)
            return remaining
        return 0.0


@dataclass(frozen=True)
class PerformanceTargets:
    cpu_percent_max: float = 90.0
    rss_mb_max: float = 512.0
    fps_min: float = 5.0


@dataclass(frozen=True)
class BudgetStatus:
    cpu_percent: float
    rss_mb: float
    fps: float
    overloaded: bool
    warning: str | None


class PerformanceController:
    def __init__(self, targets: PerformanceTargets | None = None) -> None:
        self.targets = targets or PerformanceTargets()
        self._process = psutil.Process()
        # Prime non-blocking CPU measurement.
        self._process.cpu_percent(interval=None)

    def sample(self, fps: float) -> BudgetStatus:
        cpu = float(self._process.cpu_percent(interval=None))
        rss_mb = float(self._process.memory_info().rss) / (1024 * 1024)
        overloaded = cpu > self.targets.cpu_percent_max or rss_mb > self.targets.rss_mb_max

        warning = None
        if overloaded:
            warning = "resource_overload"
        elif fps < self.targets.fps_min:
            warning = "below_fps_target"

        return BudgetStatus(
            cpu_percent=cpu,
            rss_mb=rss_mb,
            fps=float(fps),
            overloaded=overloaded,
            warning=warning,
        )
