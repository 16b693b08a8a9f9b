"""
Wiring of the sync engine components.

Builds the database, gateway client, coordination store, queue,
dispatcher, fetch orchestrators, runner, worker and importer from one
Settings object. Any component can be passed in to replace the default.
"""

from dataclasses import dataclass
from typing import Any

from steam_apps_db.catalog import CatalogImporter, StalenessPolicy
from steam_apps_db.config import Settings, get_settings
from steam_apps_db.ingestion.gateway import SteamApiClient
from steam_apps_db.jobs import (
    CoordinationStore,
    DecayRateLimiter,
    InMemoryCoordinationStore,
    InMemoryJobQueue,
    JobDispatcher,
    JobQueue,
    JobRunner,
    SqlCoordinationStore,
    Worker,
)
from steam_apps_db.persistence import Database
from steam_apps_db.sync import DetailsFetcher, NewsFetcher, WorkshopFetcher, build_handlers


@dataclass
class Runtime:
    settings: Settings
    database: Database
    client: SteamApiClient
    store: CoordinationStore
    queue: JobQueue
    dispatcher: JobDispatcher
    details: DetailsFetcher
    news: NewsFetcher
    workshop: WorkshopFetcher
    runner: JobRunner
    worker: Worker
    importer: CatalogImporter

    async def close(self) -> None:
        await self.client.close()
        self.database.dispose()

    async def __aenter__(self) -> "Runtime":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def build_runtime(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    client: SteamApiClient | None = None,
    store: CoordinationStore | None = None,
    queue: JobQueue | None = None,
) -> Runtime:
    """Assemble every component from settings."""
    settings = settings or get_settings()
    database = database or Database(settings.database)
    client = client or SteamApiClient(steam_config=settings.steam, retry_config=settings.retry)

    if store is None:
        if settings.queue.coordination == "database":
            store = SqlCoordinationStore(database)
        else:
            store = InMemoryCoordinationStore()
    queue = queue or InMemoryJobQueue(settings.queue.name)

    dispatcher = JobDispatcher(queue, store, settings.queue)
    details = DetailsFetcher(client, database)
    news = NewsFetcher(client, database)
    workshop = WorkshopFetcher(client, database)
    runner = JobRunner(
        build_handlers(details, news, workshop),
        queue,
        store,
        dispatcher,
        limiter=DecayRateLimiter(store, settings.queue.decay_seconds),
        config=settings.queue,
    )

    return Runtime(
        settings=settings,
        database=database,
        client=client,
        store=store,
        queue=queue,
        dispatcher=dispatcher,
        details=details,
        news=news,
        workshop=workshop,
        runner=runner,
        worker=Worker(queue, runner),
        importer=CatalogImporter(
            client,
            database,
            dispatcher,
            policy=StalenessPolicy(settings.schedule),
            config=settings.queue,
        ),
    )
