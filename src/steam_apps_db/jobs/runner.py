"""
Job execution with rate limiting, retry and lock release.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from steam_apps_db.config import QueueConfig, get_settings
from steam_apps_db.errors import DispatchError
from steam_apps_db.jobs.coordination import CoordinationStore
from steam_apps_db.jobs.dispatcher import JobDispatcher
from steam_apps_db.jobs.limiter import DecayRateLimiter
from steam_apps_db.jobs.payloads import JobKind, JobPayload, JobState
from steam_apps_db.jobs.queue import JobQueue
from steam_apps_db.logger import get_logger, job_context

# A handler runs one job and may return a follow-up job to dispatch
Handler = Callable[[JobPayload], Awaitable[JobPayload | None]]


@dataclass
class JobOutcome:
    """Result of one execute() call."""

    payload: JobPayload
    state: JobState
    error: str | None = None
    delay_seconds: float = 0.0
    follow_up_dispatched: bool = False


class JobRunner:
    """
    Runs queued jobs through their handlers.

    - Rate limit exhausted: the job goes back to the queue after one
      decay interval. The lock stays held and no attempt is counted.
    - Handler error: the job is requeued after the fixed backoff until
      `tries` attempts have failed, then it is dead and its lock released.
    - Success: the lock is released, then any follow-up job is dispatched.

    Handler errors never escape execute().
    """

    def __init__(
        self,
        handlers: Mapping[JobKind, Handler],
        queue: JobQueue,
        store: CoordinationStore,
        dispatcher: JobDispatcher,
        limiter: DecayRateLimiter | None = None,
        config: QueueConfig | None = None,
    ) -> None:
        self.handlers = dict(handlers)
        self.queue = queue
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or get_settings().queue
        self.limiter = limiter or DecayRateLimiter(store, self.config.decay_seconds)

    async def execute(self, payload: JobPayload) -> JobOutcome:
        """
        Execute one job.

        Args:
            payload: Job popped from the queue

        Returns:
            JobOutcome: State the job ended up in
        """
        with job_context(payload.job_kind.value, payload.app_id, attempt=payload.attempts + 1):
            return await self._execute(payload)

    async def _execute(self, payload: JobPayload) -> JobOutcome:
        logger = get_logger(__name__, component="runner")

        if not self.limiter.attempt():
            return self._requeue(
                payload, self.config.decay_seconds, JobState.PENDING, None, logger
            )

        handler = self.handlers.get(payload.job_kind)
        if handler is None:
            self._release(payload)
            logger.error("No handler registered for job kind")
            return JobOutcome(payload, JobState.DEAD, error="no handler")

        logger.info("Job started", state=JobState.IN_FLIGHT.value)
        try:
            follow_up = await handler(payload)
        except Exception as e:
            return self._fail(payload, e, logger)

        self._release(payload)
        logger.info("Job succeeded", state=JobState.SUCCEEDED.value)

        outcome = JobOutcome(payload, JobState.SUCCEEDED)
        if follow_up is not None:
            try:
                outcome.follow_up_dispatched = self.dispatcher.dispatch(
                    follow_up.job_kind, follow_up.app_id, follow_up.cursor
                )
            except DispatchError as e:
                logger.error("Follow-up dispatch failed", cursor=follow_up.cursor, error=str(e))
        return outcome

    def _fail(self, payload: JobPayload, error: Exception, logger: Any) -> JobOutcome:
        attempts = payload.attempts + 1
        message = f"{type(error).__name__}: {error}"

        if attempts < self.config.tries:
            retry = payload.model_copy(update={"attempts": attempts})
            logger.warning(
                "Job failed, retry scheduled",
                attempt=attempts,
                tries=self.config.tries,
                backoff_seconds=self.config.backoff_seconds,
                error=message,
            )
            return self._requeue(
                retry, self.config.backoff_seconds, JobState.RETRY_PENDING, message, logger
            )

        self._release(payload)
        logger.error(
            "Job failed permanently",
            state=JobState.DEAD.value,
            attempts=attempts,
            error=message,
        )
        return JobOutcome(payload, JobState.DEAD, error=message)

    def _requeue(
        self,
        payload: JobPayload,
        delay_seconds: float,
        state: JobState,
        error: str | None,
        logger: Any,
    ) -> JobOutcome:
        try:
            self.queue.push(payload, delay_seconds=delay_seconds)
        except Exception as e:
            self._release(payload)
            logger.error("Requeue failed, job dropped", error=str(e))
            return JobOutcome(payload, JobState.DEAD, error=str(e))

        # the lock must outlive the wait in the queue
        if not self.store.refresh_lock(
            payload.unique_id, payload.lock_token or "", self.config.unique_for_seconds
        ):
            logger.warning("Uniqueness lock lost while job was queued")
        return JobOutcome(payload, state, error=error, delay_seconds=delay_seconds)

    def _release(self, payload: JobPayload) -> None:
        self.store.release_lock(payload.unique_id, payload.lock_token)
