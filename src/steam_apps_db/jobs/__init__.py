"""
Rate-limited unique job execution.

Dispatch takes a per-(kind, app id) lock so duplicates are dropped,
the runner spaces executions by the decay interval and retries failed
jobs with a fixed backoff, and the worker drains the queue.
"""

from steam_apps_db.jobs.coordination import (
    CoordinationStore,
    InMemoryCoordinationStore,
    SqlCoordinationStore,
)
from steam_apps_db.jobs.dispatcher import JobDispatcher
from steam_apps_db.jobs.limiter import DecayRateLimiter
from steam_apps_db.jobs.payloads import JobKind, JobPayload, JobState
from steam_apps_db.jobs.queue import InMemoryJobQueue, JobQueue
from steam_apps_db.jobs.runner import Handler, JobOutcome, JobRunner
from steam_apps_db.jobs.worker import Worker

__all__ = [
    "CoordinationStore",
    "DecayRateLimiter",
    "Handler",
    "InMemoryCoordinationStore",
    "InMemoryJobQueue",
    "JobDispatcher",
    "JobKind",
    "JobOutcome",
    "JobPayload",
    "JobQueue",
    "JobRunner",
    "JobState",
    "SqlCoordinationStore",
    "Worker",
]
