"""
Progress Service - estimated completion for uploads without byte feedback.

The executor only reports success or failure, so progress is modelled as
elapsed time over a duration drawn once per attempt.
"""
import math
import random
import time
from typing import Callable, Optional

from ..models import QueueConfig, UploadTask
from ..protocols import IProgressProbe, IProgressSource


class EstimatedProgress(IProgressProbe):
    """Time based estimate for a single upload attempt."""

    def __init__(
        self,
        estimated_duration: float,
        cap: int = 95,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.estimated_duration = estimated_duration
        self._cap = cap
        self._clock = clock
        self._started_at = clock()

    @property
    def elapsed(self) -> float:
        return max(self._clock() - self._started_at, 0.0)

    def percent(self) -> int:
        return min(self._cap, int(math.floor(self.elapsed / self.estimated_duration * 100)))


class SimulatedProgressSource(IProgressSource):
    """
    Progress source that draws a random duration for every attempt.

    Usage:
        source = SimulatedProgressSource(QueueConfig(), rng=random.Random(7))
        probe = source.begin(task)
        probe.percent()  # 0..95
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config or QueueConfig()
        self._rng = rng or random.Random()
        self._clock = clock

    def begin(self, task: UploadTask) -> EstimatedProgress:
        duration = self._rng.uniform(
            self._config.min_estimated_duration,
            self._config.max_estimated_duration,
        )
        return EstimatedProgress(duration, cap=self._config.progress_cap, clock=self._clock)
