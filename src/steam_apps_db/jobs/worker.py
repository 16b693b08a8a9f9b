"""
Queue worker.
"""

import asyncio
from collections import Counter

from steam_apps_db.jobs.payloads import JobState
from steam_apps_db.jobs.queue import JobQueue
from steam_apps_db.jobs.runner import JobOutcome, JobRunner
from steam_apps_db.logger import get_logger


class Worker:
    """
    Pulls jobs from a queue and runs them one at a time.

    A requeued job does not block the worker: it moves on to whatever
    is ready next and sleeps only when nothing is.
    """

    def __init__(self, queue: JobQueue, runner: JobRunner) -> None:
        self.queue = queue
        self.runner = runner
        self.stats: Counter[JobState] = Counter()
        self._logger = get_logger(__name__, component="worker")

    async def run_once(self) -> JobOutcome | None:
        """Run the next ready job, if any."""
        payload = self.queue.pop()
        if payload is None:
            return None
        outcome = await self.runner.execute(payload)
        self.stats[outcome.state] += 1
        return outcome

    async def run_until_idle(self, max_jobs: int | None = None) -> list[JobOutcome]:
        """
        Drain the queue, waiting out delayed jobs.

        Args:
            max_jobs: Stop after this many executions (None = until empty)

        Returns:
            list[JobOutcome]: Outcomes in execution order
        """
        outcomes: list[JobOutcome] = []
        while max_jobs is None or len(outcomes) < max_jobs:
            outcome = await self.run_once()
            if outcome is not None:
                outcomes.append(outcome)
                continue

            wait = self.queue.next_ready_in()
            if wait is None:
                break
            await asyncio.sleep(wait)

        self._logger.info(
            "Worker idle",
            executed=len(outcomes),
            **{state.value: count for state, count in self.stats.items()},
        )
        return outcomes
