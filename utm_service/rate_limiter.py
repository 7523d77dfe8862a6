"""
Rate limiting for event ingestion.

Fixed-window counter per visitor hash. The first visit (or the first visit
after the window has elapsed) opens a window with one trial; later visits
inside the window are allowed while ``trials < threshold``. Bursts straddling
a window boundary can exceed the nominal rate.
"""

import logging
import time
from typing import Callable

from .cache import CacheRegion
from .models import RateLimitRecord

logger = logging.getLogger(__name__)


class RateLimiter:
    """Per-visitor fixed-window rate limiter backed by a cache region."""

    def __init__(
        self,
        cache: CacheRegion,
        enabled: bool = True,
        window_minutes: int = 60,
        trials: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the limiter.

        Args:
            cache: Region holding one RateLimitRecord per visitor hash
            enabled: When False every visit is allowed
            window_minutes: Length of a window
            trials: Allowed visits per window
            clock: Returns the current time in epoch seconds
        """
        self.cache = cache
        self.enabled = enabled
        self.window_seconds = int(window_minutes) * 60
        self.trials = int(trials)
        self._clock = clock

    def allow(self, iphash: str) -> bool:
        """Consume one trial for iphash; False when the window is exhausted."""
        if not self.enabled:
            return True

        now = self._clock()
        record = RateLimitRecord.from_dict(self.cache.get(iphash))

        # none yet or window passed
        if record is None or now >= record.time + self.window_seconds:
            self._store(iphash, RateLimitRecord(time=now, trials=1))
            return True

        if record.trials < self.trials:
            record.trials += 1
            self._store(iphash, record)
            return True

        logger.debug(f"Rate limit reached for {iphash[:8]}: {record.trials}/{self.trials}")
        return False

    def _store(self, iphash: str, record: RateLimitRecord) -> None:
        self.cache.set(iphash, record.to_dict(), self.window_seconds)
