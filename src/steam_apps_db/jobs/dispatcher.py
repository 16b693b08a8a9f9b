"""
Unique job dispatch.
"""

import uuid

from steam_apps_db.config import QueueConfig, get_settings
from steam_apps_db.errors import DispatchError
from steam_apps_db.jobs.coordination import CoordinationStore
from steam_apps_db.jobs.payloads import JobKind, JobPayload
from steam_apps_db.jobs.queue import JobQueue
from steam_apps_db.logger import get_logger


class JobDispatcher:
    """
    Pushes fetch jobs, at most one per (job kind, app id).

    The uniqueness lock is taken before the push and stays held while
    the job is queued or running. The runner releases it once the job
    succeeds or dies.
    """

    def __init__(
        self,
        queue: JobQueue,
        store: CoordinationStore,
        config: QueueConfig | None = None,
    ) -> None:
        self.queue = queue
        self.store = store
        self.config = config or get_settings().queue
        self._logger = get_logger(__name__, component="dispatcher", queue=self.config.name)

    def dispatch(self, kind: JobKind, app_id: int, cursor: str | None = None) -> bool:
        """
        Queue a job unless an identical one is queued or running.

        Args:
            kind: Job kind
            app_id: Steam application ID
            cursor: Workshop pagination cursor

        Returns:
            bool: True if queued, False if dropped as a duplicate

        Raises:
            DispatchError: If the lock store or the queue fails
        """
        token = uuid.uuid4().hex
        payload = JobPayload(job_kind=kind, app_id=app_id, cursor=cursor, lock_token=token)

        try:
            acquired = self.store.acquire_lock(
                payload.unique_id, token, self.config.unique_for_seconds
            )
        except Exception as e:
            raise DispatchError(
                f"Failed to lock {kind.value} job for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        if not acquired:
            self._logger.debug("Duplicate job dropped", job_kind=kind.value, app_id=app_id)
            return False

        try:
            self.queue.push(payload)
        except Exception as e:
            self.store.release_lock(payload.unique_id, token)
            raise DispatchError(
                f"Failed to queue {kind.value} job for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._logger.debug("Job dispatched", job_kind=kind.value, app_id=app_id, cursor=cursor)
        return True
