"""
Rate/retry controller shared by every provider adapter.

Every outbound call waits until the provider's minimum interval has passed
since its previous call. A rate-limit signal costs a long cooldown and the
orchestrator re-queues the same unit of work, up to a fixed number of
attempts.
"""

import time
from typing import Callable

from loguru import logger

from spot_pipeline.errors import RateLimited


class RateController:
    """
    Blocking per-provider throttle plus rate-limit cooldown bookkeeping.

    Usage:
        rate = RateController({"inference": 4.0, "mapbox": 0.1}, cooldown_seconds=60)
        rate.throttle("inference")
        ...call the provider...
    """

    def __init__(
        self,
        delays: dict[str, float],
        cooldown_seconds: float = 60.0,
        max_attempts: int = 5,
        default_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.delays = dict(delays)
        self.cooldown_seconds = cooldown_seconds
        self.max_attempts = max_attempts
        self.default_delay = default_delay
        self._sleep = sleep
        self._clock = clock
        self._last_call: dict[str, float] = {}

        # Counters for the run report
        self.calls = 0
        self.cooldowns = 0

    def delay_for(self, provider: str) -> float:
        return self.delays.get(provider, self.default_delay)

    def throttle(self, provider: str) -> None:
        """Block until `provider` may be called again, then mark the call."""
        min_interval = self.delay_for(provider)
        last = self._last_call.get(provider)

        if last is not None and min_interval > 0:
            elapsed = self._clock() - last
            if elapsed < min_interval:
                self._sleep(min_interval - elapsed)

        self._last_call[provider] = self._clock()
        self.calls += 1

    def cooldown(self, error: RateLimited) -> float:
        """Pause after a rate-limit signal. Returns the seconds slept."""
        seconds = self.cooldown_seconds
        if error.retry_after:
            seconds = max(seconds, error.retry_after)

        self.cooldowns += 1
        logger.warning(f"Rate limited by {error.provider or 'provider'}, cooling down {seconds:.0f}s")
        self._sleep(seconds)

        # The cooldown counts as the provider's idle interval
        if error.provider:
            self._last_call[error.provider] = self._clock() - self.delay_for(error.provider)
        return seconds

    def allows_retry(self, attempts: int) -> bool:
        """True while a unit that has been rate limited `attempts` times may run again."""
        return attempts < self.max_attempts
