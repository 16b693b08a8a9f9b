"""Integration tests for the catalog import and a full sync run."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
import respx
from sqlalchemy import select

from steam_apps_db.catalog import CatalogImporter, StalenessPolicy
from steam_apps_db.config import (
    QueueConfig,
    RetryConfig,
    SchedulingConfig,
    Settings,
    SteamAPIConfig,
)
from steam_apps_db.ingestion.gateway import SteamApiClient
from steam_apps_db.jobs import (
    InMemoryCoordinationStore,
    InMemoryJobQueue,
    JobDispatcher,
    JobKind,
    JobPayload,
    JobState,
)
from steam_apps_db.persistence import Database, SteamApp, SteamAppDetail
from steam_apps_db.runtime import build_runtime

from conftest import FakeClock

APP_LIST_URL = "https://api.steampowered.com/ISteamApps/GetAppList/v2/"
APP_DETAILS_URL = "https://store.steampowered.com/api/appdetails"
ASSETS_URL = "https://shared.akamai.steamstatic.com/store_item_assets/steam/apps"
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _app_list(*apps: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"applist": {"apps": list(apps)}})


class BrokenQueue(InMemoryJobQueue):
    def push(self, payload: JobPayload, delay_seconds: float = 0.0) -> None:
        raise ConnectionError("queue unavailable")


class FlakyLockStore(InMemoryCoordinationStore):
    """Lock store that cannot be reached for one key."""

    def __init__(self, clock: FakeClock, failing_key: str) -> None:
        super().__init__(clock=clock)
        self.failing_key = failing_key

    def acquire_lock(self, key: str, owner: str, ttl_seconds: float | None) -> bool:
        if key == self.failing_key:
            raise RuntimeError("lock store unavailable")
        return super().acquire_lock(key, owner, ttl_seconds)


@pytest.fixture
def client(steam_config: SteamAPIConfig, retry_config: RetryConfig) -> SteamApiClient:
    return SteamApiClient(steam_config=steam_config, retry_config=retry_config)


@pytest.fixture
def queue(clock: FakeClock) -> InMemoryJobQueue:
    return InMemoryJobQueue(clock=clock)


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore(clock=clock)


def _importer(
    client: SteamApiClient,
    database: Database,
    queue: InMemoryJobQueue,
    store: InMemoryCoordinationStore,
    config: QueueConfig,
) -> CatalogImporter:
    return CatalogImporter(
        client,
        database,
        JobDispatcher(queue, store, config),
        policy=StalenessPolicy(SchedulingConfig()),
        config=config,
    )


def _names(database: Database) -> dict[int, str]:
    with database.session() as session:
        return {row.appid: row.name for row in session.scalars(select(SteamApp))}


class TestCatalogImporter:
    """Tests for CatalogImporter.import_apps."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_imports_named_apps_and_dispatches(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(
            return_value=_app_list({"appid": 1, "name": "A"}, {"appid": 2, "name": ""})
        )
        importer = _importer(client, database, queue, store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.created == 1
        assert result.skipped == 1
        assert result.dispatched == 1
        assert result.error is None
        assert _names(database) == {1: "A"}
        assert [(p.job_kind, p.app_id) for p in queue.pending()] == [(JobKind.DETAILS, 1)]

    @respx.mock
    @pytest.mark.asyncio
    async def test_invalid_entries_are_skipped(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(
            return_value=_app_list(
                {"appid": 0, "name": "Zero"},
                {"appid": "abc", "name": "Bad"},
                {"name": "No id"},
                {"appid": 3, "name": "  "},
                {"appid": 4, "name": "Valid"},
            )
        )
        importer = _importer(client, database, queue, store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.skipped == 4
        assert result.created == 1
        assert _names(database) == {4: "Valid"}

    @respx.mock
    @pytest.mark.asyncio
    async def test_reimport_updates_and_drops_duplicate_jobs(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        route = respx.get(APP_LIST_URL).mock(return_value=_app_list({"appid": 1, "name": "A"}))
        importer = _importer(client, database, queue, store, queue_config)
        await importer.import_apps(now=NOW)

        route.mock(return_value=_app_list({"appid": 1, "name": "A (Renamed)"}))
        result = await importer.import_apps(now=NOW)

        assert result.created == 0
        assert result.updated == 1
        assert result.dispatched == 0
        assert _names(database) == {1: "A (Renamed)"}
        assert len(queue) == 1

    @respx.mock
    @pytest.mark.asyncio
    async def test_fresh_entries_are_not_dispatched(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
        add_app: Callable[..., int],
    ) -> None:
        add_app(1, "A", last_details_refresh_at=datetime(2025, 6, 14, tzinfo=timezone.utc))
        respx.get(APP_LIST_URL).mock(return_value=_app_list({"appid": 1, "name": "A"}))
        importer = _importer(client, database, queue, store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.updated == 1
        assert result.dispatched == 0
        assert len(queue) == 0

    @respx.mock
    @pytest.mark.asyncio
    async def test_optional_scans(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
    ) -> None:
        config = QueueConfig(
            decay_seconds=0.0, enable_news_scanning=True, enable_workshop_scanning=True
        )
        respx.get(APP_LIST_URL).mock(return_value=_app_list({"appid": 1, "name": "A"}))
        importer = _importer(client, database, queue, store, config)

        result = await importer.import_apps(now=NOW)

        assert result.dispatched == 3
        assert [p.job_kind for p in queue.pending()] == [
            JobKind.DETAILS,
            JobKind.NEWS,
            JobKind.WORKSHOP,
        ]

    @respx.mock
    @pytest.mark.asyncio
    async def test_batches(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
    ) -> None:
        config = QueueConfig(decay_seconds=0.0, import_batch_size=2)
        respx.get(APP_LIST_URL).mock(
            return_value=_app_list(*({"appid": i, "name": f"App {i}"} for i in range(1, 6)))
        )
        importer = _importer(client, database, queue, store, config)

        result = await importer.import_apps(now=NOW)

        assert result.created == 5
        assert result.dispatched == 5
        assert len(_names(database)) == 5

    @respx.mock
    @pytest.mark.asyncio
    async def test_dispatch_failure_is_counted(
        self,
        client: SteamApiClient,
        database: Database,
        store: InMemoryCoordinationStore,
        clock: FakeClock,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(return_value=_app_list({"appid": 1, "name": "A"}))
        importer = _importer(client, database, BrokenQueue(clock=clock), store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.created == 1
        assert result.dispatch_failures == 1
        assert result.error is None
        assert not store.is_locked("details:1")

    @respx.mock
    @pytest.mark.asyncio
    async def test_lock_store_failure_skips_only_that_entry(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        clock: FakeClock,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(
            return_value=_app_list({"appid": 1, "name": "A"}, {"appid": 2, "name": "B"})
        )
        store = FlakyLockStore(clock, failing_key="details:1")
        importer = _importer(client, database, queue, store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.error is None
        assert result.created == 2
        assert result.dispatch_failures == 1
        assert result.dispatched == 1
        assert [(p.job_kind, p.app_id) for p in queue.pending()] == [(JobKind.DETAILS, 2)]

    @respx.mock
    @pytest.mark.asyncio
    async def test_app_list_failure_is_reported(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(return_value=httpx.Response(503))
        importer = _importer(client, database, queue, store, queue_config)

        result = await importer.import_apps(now=NOW)

        assert result.error is not None
        assert result.error.startswith("SteamApiError")
        assert result.created == 0
        assert _names(database) == {}


class TestFullSync:
    """Import followed by a worker run through the real runtime wiring."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_import_then_drain(
        self,
        client: SteamApiClient,
        database: Database,
        queue: InMemoryJobQueue,
        store: InMemoryCoordinationStore,
        steam_config: SteamAPIConfig,
        retry_config: RetryConfig,
        queue_config: QueueConfig,
    ) -> None:
        respx.get(APP_LIST_URL).mock(
            return_value=_app_list({"appid": 1, "name": "A"}, {"appid": 2, "name": ""})
        )
        details_route = respx.get(APP_DETAILS_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "1": {
                        "success": True,
                        "data": {
                            "name": "A",
                            "release_date": {"coming_soon": False, "date": "1 Jan, 2020"},
                            "dlc": [5],
                        },
                    }
                },
            )
        )
        respx.head(url__startswith=ASSETS_URL).mock(return_value=httpx.Response(404))
        respx.get(url__startswith=ASSETS_URL).mock(return_value=httpx.Response(404))

        settings = Settings(steam=steam_config, retry=retry_config, queue=queue_config)
        async with build_runtime(
            settings, database=database, client=client, store=store, queue=queue
        ) as runtime:
            result = await runtime.importer.import_apps()
            outcomes = await runtime.worker.run_until_idle()
            again = await runtime.importer.import_apps()

        assert result.created == 1
        assert result.skipped == 1
        assert [o.state for o in outcomes] == [JobState.SUCCEEDED]
        assert details_route.call_count == 1
        assert again.dispatched == 0

        with database.session() as session:
            detail = session.scalars(select(SteamAppDetail)).one()
            assert detail.name == "A"
            entry = session.scalars(select(SteamApp)).one()
            assert entry.last_details_refresh_at is not None
