"""Tests for job dispatch, execution and the worker loop."""

from typing import Any

import pytest

from steam_apps_db.config import QueueConfig
from steam_apps_db.errors import DispatchError
from steam_apps_db.jobs import (
    DecayRateLimiter,
    InMemoryCoordinationStore,
    InMemoryJobQueue,
    JobDispatcher,
    JobKind,
    JobPayload,
    JobRunner,
    JobState,
    Worker,
)

from conftest import FakeClock


class BrokenQueue(InMemoryJobQueue):
    """Queue whose pushes fail."""

    def push(self, payload: JobPayload, delay_seconds: float = 0.0) -> None:
        raise ConnectionError("queue unavailable")


class UnreachableLockStore(InMemoryCoordinationStore):
    """Lock store whose lock writes fail."""

    def acquire_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        raise RuntimeError("lock store unavailable")


class RecordingHandler:
    """Handler that records calls and fails a set number of times."""

    def __init__(self, failures: int = 0, follow_up: JobPayload | None = None) -> None:
        self.calls: list[JobPayload] = []
        self.failures = failures
        self.follow_up = follow_up

    async def __call__(self, payload: JobPayload) -> JobPayload | None:
        self.calls.append(payload)
        if len(self.calls) <= self.failures:
            raise RuntimeError(f"failure {len(self.calls)}")
        return self.follow_up


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore(clock=clock)


@pytest.fixture
def queue(clock: FakeClock) -> InMemoryJobQueue:
    return InMemoryJobQueue(clock=clock)


@pytest.fixture
def dispatcher(
    queue: InMemoryJobQueue, store: InMemoryCoordinationStore, queue_config: QueueConfig
) -> JobDispatcher:
    return JobDispatcher(queue, store, queue_config)


def _runner(
    handler: Any,
    queue: InMemoryJobQueue,
    store: InMemoryCoordinationStore,
    dispatcher: JobDispatcher,
    config: QueueConfig,
    limiter: DecayRateLimiter | None = None,
) -> JobRunner:
    return JobRunner(
        {JobKind.DETAILS: handler, JobKind.WORKSHOP: handler},
        queue,
        store,
        dispatcher,
        limiter=limiter,
        config=config,
    )


class TestJobPayload:
    """Tests for JobPayload."""

    def test_unique_id_is_scoped_by_kind(self) -> None:
        details = JobPayload(job_kind=JobKind.DETAILS, app_id=10)
        news = JobPayload(job_kind=JobKind.NEWS, app_id=10)

        assert details.unique_id == "details:10"
        assert news.unique_id == "news:10"

    def test_app_id_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            JobPayload(job_kind=JobKind.DETAILS, app_id=0)


class TestInMemoryJobQueue:
    """Tests for InMemoryJobQueue."""

    def test_delayed_job_is_held_back(self, queue: InMemoryJobQueue, clock: FakeClock) -> None:
        late = JobPayload(job_kind=JobKind.DETAILS, app_id=1)
        now = JobPayload(job_kind=JobKind.DETAILS, app_id=2)
        queue.push(late, delay_seconds=5)
        queue.push(now)

        assert queue.pop() == now
        assert queue.pop() is None
        assert queue.next_ready_in() == 5

        clock.advance(5)
        assert queue.pop() == late
        assert queue.next_ready_in() is None

    def test_push_order_is_kept(self, queue: InMemoryJobQueue) -> None:
        payloads = [JobPayload(job_kind=JobKind.DETAILS, app_id=i) for i in (3, 1, 2)]
        for payload in payloads:
            queue.push(payload)

        assert queue.pending() == payloads
        assert len(queue) == 3


class TestJobDispatcher:
    """Tests for unique dispatch."""

    def test_duplicate_is_dropped(
        self, dispatcher: JobDispatcher, queue: InMemoryJobQueue
    ) -> None:
        assert dispatcher.dispatch(JobKind.DETAILS, 10)
        assert not dispatcher.dispatch(JobKind.DETAILS, 10)

        assert len(queue) == 1

    def test_kinds_are_independent(
        self, dispatcher: JobDispatcher, queue: InMemoryJobQueue
    ) -> None:
        assert dispatcher.dispatch(JobKind.DETAILS, 10)
        assert dispatcher.dispatch(JobKind.NEWS, 10)
        assert dispatcher.dispatch(JobKind.DETAILS, 20)

        assert len(queue) == 3

    def test_payload_carries_lock_owner(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
    ) -> None:
        dispatcher.dispatch(JobKind.WORKSHOP, 10, cursor="abc")
        (payload,) = queue.pending()

        assert payload.cursor == "abc"
        assert payload.lock_token
        assert store.is_locked("workshop:10")

    def test_push_failure_releases_lock(
        self,
        store: InMemoryCoordinationStore,
        clock: FakeClock,
        queue_config: QueueConfig,
    ) -> None:
        dispatcher = JobDispatcher(BrokenQueue(clock=clock), store, queue_config)

        with pytest.raises(DispatchError) as exc_info:
            dispatcher.dispatch(JobKind.DETAILS, 10)

        assert exc_info.value.app_id == 10
        assert isinstance(exc_info.value.original_error, ConnectionError)
        assert not store.is_locked("details:10")

    def test_lock_outlives_long_queue_wait(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        clock: FakeClock,
    ) -> None:
        assert dispatcher.dispatch(JobKind.DETAILS, 42)

        clock.advance(3601)

        assert not dispatcher.dispatch(JobKind.DETAILS, 42)
        assert len(queue) == 1

    def test_lock_store_failure_raises_dispatch_error(
        self,
        queue: InMemoryJobQueue,
        clock: FakeClock,
        queue_config: QueueConfig,
    ) -> None:
        dispatcher = JobDispatcher(queue, UnreachableLockStore(clock=clock), queue_config)

        with pytest.raises(DispatchError) as exc_info:
            dispatcher.dispatch(JobKind.DETAILS, 10)

        assert exc_info.value.app_id == 10
        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert len(queue) == 0


class TestJobRunner:
    """Tests for JobRunner."""

    @pytest.mark.asyncio
    async def test_success_releases_lock(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        handler = RecordingHandler()
        runner = _runner(handler, queue, store, dispatcher, queue_config)
        dispatcher.dispatch(JobKind.DETAILS, 10)

        outcome = await runner.execute(queue.pop())  # type: ignore[arg-type]

        assert outcome.state == JobState.SUCCEEDED
        assert len(handler.calls) == 1
        assert not store.is_locked("details:10")
        assert dispatcher.dispatch(JobKind.DETAILS, 10)

    @pytest.mark.asyncio
    async def test_rate_limited_job_is_requeued(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        clock: FakeClock,
    ) -> None:
        config = QueueConfig(decay_seconds=2.0, backoff_seconds=0.0, tries=3)
        handler = RecordingHandler()
        runner = _runner(handler, queue, store, dispatcher, config)
        dispatcher.dispatch(JobKind.DETAILS, 10)
        dispatcher.dispatch(JobKind.DETAILS, 20)

        first = await runner.execute(queue.pop())  # type: ignore[arg-type]
        second = await runner.execute(queue.pop())  # type: ignore[arg-type]

        assert first.state == JobState.SUCCEEDED
        assert second.state == JobState.PENDING
        assert second.delay_seconds == 2.0
        assert len(handler.calls) == 1
        assert store.is_locked("details:20")

        (requeued,) = queue.pending()
        assert requeued.app_id == 20
        assert requeued.attempts == 0
        assert queue.pop() is None

        clock.advance(2.0)
        third = await runner.execute(queue.pop())  # type: ignore[arg-type]
        assert third.state == JobState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_failure_is_retried_then_dead(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        handler = RecordingHandler(failures=10)
        runner = _runner(handler, queue, store, dispatcher, queue_config)
        dispatcher.dispatch(JobKind.DETAILS, 10)

        states = []
        while (payload := queue.pop()) is not None:
            outcome = await runner.execute(payload)
            states.append(outcome.state)

        assert states == [JobState.RETRY_PENDING, JobState.RETRY_PENDING, JobState.DEAD]
        assert [p.attempts for p in handler.calls] == [0, 1, 2]
        assert outcome.error == "RuntimeError: failure 3"
        assert not store.is_locked("details:10")

    @pytest.mark.asyncio
    async def test_retry_keeps_lock(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        clock: FakeClock,
    ) -> None:
        config = QueueConfig(decay_seconds=0.0, backoff_seconds=30.0, tries=3)
        runner = _runner(RecordingHandler(failures=1), queue, store, dispatcher, config)
        dispatcher.dispatch(JobKind.DETAILS, 10)

        outcome = await runner.execute(queue.pop())  # type: ignore[arg-type]

        assert outcome.state == JobState.RETRY_PENDING
        assert outcome.delay_seconds == 30.0
        assert store.is_locked("details:10")
        assert not dispatcher.dispatch(JobKind.DETAILS, 10)
        assert queue.next_ready_in() == 30.0

        clock.advance(30.0)
        retried = await runner.execute(queue.pop())  # type: ignore[arg-type]
        assert retried.state == JobState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_requeue_renews_lock_expiry(
        self,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        clock: FakeClock,
    ) -> None:
        config = QueueConfig(
            decay_seconds=0.0, backoff_seconds=30.0, tries=3, unique_for_seconds=60.0
        )
        dispatcher = JobDispatcher(queue, store, config)
        runner = _runner(RecordingHandler(failures=1), queue, store, dispatcher, config)
        dispatcher.dispatch(JobKind.DETAILS, 10)

        clock.advance(50)
        outcome = await runner.execute(queue.pop())  # type: ignore[arg-type]
        assert outcome.state == JobState.RETRY_PENDING

        # past the first expiry, inside the renewed one
        clock.advance(30)
        assert store.is_locked("details:10")
        assert not dispatcher.dispatch(JobKind.DETAILS, 10)

        retried = await runner.execute(queue.pop())  # type: ignore[arg-type]
        assert retried.state == JobState.SUCCEEDED
        assert not store.is_locked("details:10")

    @pytest.mark.asyncio
    async def test_follow_up_is_dispatched(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        follow_up = JobPayload(job_kind=JobKind.WORKSHOP, app_id=10, cursor="next")
        runner = _runner(RecordingHandler(follow_up=follow_up), queue, store, dispatcher, queue_config)
        dispatcher.dispatch(JobKind.WORKSHOP, 10)

        outcome = await runner.execute(queue.pop())  # type: ignore[arg-type]

        assert outcome.follow_up_dispatched
        (queued,) = queue.pending()
        assert queued.cursor == "next"
        assert store.is_locked("workshop:10")

    @pytest.mark.asyncio
    async def test_missing_handler_is_dead(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        runner = _runner(RecordingHandler(), queue, store, dispatcher, queue_config)
        dispatcher.dispatch(JobKind.NEWS, 10)

        outcome = await runner.execute(queue.pop())  # type: ignore[arg-type]

        assert outcome.state == JobState.DEAD
        assert not store.is_locked("news:10")


class TestWorker:
    """Tests for the worker loop."""

    @pytest.mark.asyncio
    async def test_duplicates_execute_once(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        handler = RecordingHandler()
        worker = Worker(queue, _runner(handler, queue, store, dispatcher, queue_config))

        dispatcher.dispatch(JobKind.DETAILS, 10)
        dispatcher.dispatch(JobKind.DETAILS, 10)
        outcomes = await worker.run_until_idle()

        assert len(handler.calls) == 1
        assert [o.state for o in outcomes] == [JobState.SUCCEEDED]
        assert worker.stats[JobState.SUCCEEDED] == 1

    @pytest.mark.asyncio
    async def test_max_jobs(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        worker = Worker(queue, _runner(RecordingHandler(), queue, store, dispatcher, queue_config))
        for app_id in (1, 2, 3):
            dispatcher.dispatch(JobKind.DETAILS, app_id)

        outcomes = await worker.run_until_idle(max_jobs=2)

        assert len(outcomes) == 2
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_empty_queue(
        self,
        dispatcher: JobDispatcher,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        worker = Worker(queue, _runner(RecordingHandler(), queue, store, dispatcher, queue_config))

        assert await worker.run_until_idle() == []
        assert await worker.run_once() is None
