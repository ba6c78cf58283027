"""
Real-time Load Feed
===================
Cosmetic load samples for dashboards.

Samples are random and carry no information about any record; nothing in
the record lifecycle reads them.
"""

import asyncio
from collections import deque
from typing import List, Optional

import numpy as np


class RealTimeLoadFeed:
    """
    Fixed-size sliding window of samples, filled by a cancellable task.

    Args:
        interval: Seconds between samples
        window: Number of samples kept
        low, high: Sample range, [low, high)
        seed: Optional RNG seed for reproducible feeds
    """

    def __init__(self, interval: float = 2.0, window: int = 20,
                 low: int = 500, high: int = 1500, seed: Optional[int] = None):
        self.interval = interval
        self.low = low
        self.high = high
        self._samples = deque(maxlen=window)
        self._rng = np.random.default_rng(seed)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> int:
        value = int(self._rng.integers(self.low, self.high))
        self._samples.append(value)
        return value

    def samples(self) -> List[int]:
        return list(self._samples)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)
