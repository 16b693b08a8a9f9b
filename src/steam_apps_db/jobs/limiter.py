"""
Decay rate limiter shared by every fetch job.
"""

from steam_apps_db.jobs.coordination import CoordinationStore
from steam_apps_db.logger import get_logger

DEFAULT_LIMITER_KEY = "steam-api"


class DecayRateLimiter:
    """
    Allows one execution per decay interval across all workers.

    Unlike a blocking limiter, attempt() never waits: a caller that is
    refused releases its job back to the queue instead.

    Example:
        >>> limiter = DecayRateLimiter(store, decay_seconds=1.0)
        >>> if limiter.attempt():
        ...     await run_job()
    """

    def __init__(
        self,
        store: CoordinationStore,
        decay_seconds: float,
        key: str = DEFAULT_LIMITER_KEY,
    ) -> None:
        self.store = store
        self.decay_seconds = decay_seconds
        self.key = key
        self._logger = get_logger(__name__, component="rate_limiter", limiter_key=key)

    def attempt(self) -> bool:
        """Claim the current window. Returns False when exhausted."""
        allowed = self.store.try_acquire_slot(self.key, self.decay_seconds)
        if not allowed:
            self._logger.debug("Rate limit exhausted", decay_seconds=self.decay_seconds)
        return allowed
