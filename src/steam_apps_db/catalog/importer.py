"""
Catalog import orchestrator.

Walks the full Steam app list in bounded batches, upserts catalog
entries and dispatches fetch jobs for the entries the staleness policy
marks as due.
"""

from collections.abc import Iterator, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from steam_apps_db.catalog.scheduling import StalenessPolicy
from steam_apps_db.config import QueueConfig, get_settings
from steam_apps_db.errors import DispatchError
from steam_apps_db.ingestion.contracts import AppListItem
from steam_apps_db.ingestion.gateway import SteamApiClient
from steam_apps_db.jobs import JobDispatcher, JobKind
from steam_apps_db.logger import get_logger
from steam_apps_db.persistence.database import Database
from steam_apps_db.persistence.models import SteamApp, utcnow


@dataclass
class ImportResult:
    """Counts reported by one import run."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    dispatched: int = 0
    dispatch_failures: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _batches(items: Sequence[AppListItem], size: int) -> Iterator[Sequence[AppListItem]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class CatalogImporter:
    """
    Imports the Steam app list into the catalog.

    Each batch is upserted in its own transaction. Jobs for due entries
    are dispatched after the batch commits, so a job never runs against
    an entry that is not stored yet.

    Example:
        >>> importer = CatalogImporter(client, database, dispatcher)
        >>> result = await importer.import_apps()
        >>> print(result.created, result.updated, result.skipped)
    """

    def __init__(
        self,
        client: SteamApiClient,
        database: Database,
        dispatcher: JobDispatcher,
        *,
        policy: StalenessPolicy | None = None,
        config: QueueConfig | None = None,
    ) -> None:
        self.client = client
        self.database = database
        self.dispatcher = dispatcher
        self.policy = policy or StalenessPolicy()
        self.config = config or get_settings().queue
        self._logger = get_logger(__name__, component="importer")

    async def import_apps(self, now: datetime | None = None) -> ImportResult:
        """
        Run one catalog import.

        Never raises: any failure is logged and recorded in the result,
        which still carries the counts of the batches already committed.

        Args:
            now: Reference time for the staleness policy

        Returns:
            ImportResult: created / updated / skipped / dispatch counts
        """
        result = ImportResult()
        now = now or utcnow()

        try:
            raw_apps = await self.client.get_app_list()
            apps = self._parse(raw_apps, result)

            self._logger.info(
                "Importing app list",
                total=len(raw_apps),
                importable=len(apps),
                skipped=result.skipped,
            )

            for batch in _batches(apps, self.config.import_batch_size):
                due = self._upsert_batch(batch, result, now)
                for app_id in due:
                    self._dispatch_jobs(app_id, result)

        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            self._logger.error("Import failed", **result.to_dict())
            return result

        self._logger.info("Import completed", **result.to_dict())
        return result

    def _parse(self, raw_apps: list[dict[str, Any]], result: ImportResult) -> list[AppListItem]:
        apps = []
        for raw in raw_apps:
            try:
                item = AppListItem.model_validate(raw)
            except ValidationError:
                result.skipped += 1
                continue
            if not item.has_name:
                result.skipped += 1
                continue
            apps.append(item)
        return apps

    def _upsert_batch(
        self,
        batch: Sequence[AppListItem],
        result: ImportResult,
        now: datetime,
    ) -> list[int]:
        """Upsert one batch and return the app ids due for a details fetch."""
        due: list[int] = []
        created = updated = 0

        with self.database.transaction() as session:
            existing = {
                row.appid: row
                for row in session.scalars(
                    select(SteamApp)
                    .options(selectinload(SteamApp.detail))
                    .where(SteamApp.appid.in_([item.appid for item in batch]))
                )
            }

            for item in batch:
                entry = existing.get(item.appid)
                if entry is None:
                    entry = SteamApp(appid=item.appid, name=item.name)
                    session.add(entry)
                    existing[item.appid] = entry
                    created += 1
                else:
                    if entry.name != item.name:
                        entry.name = item.name  # type: ignore[assignment]
                    updated += 1

                if self.policy.should_refresh_details(entry, now) and item.appid not in due:
                    due.append(item.appid)

        result.created += created
        result.updated += updated
        self._logger.debug("Batch imported", size=len(batch), created=created, updated=updated)
        return due

    def _dispatch_jobs(self, app_id: int, result: ImportResult) -> None:
        kinds = [JobKind.DETAILS]
        if self.config.enable_news_scanning:
            kinds.append(JobKind.NEWS)
        if self.config.enable_workshop_scanning:
            kinds.append(JobKind.WORKSHOP)

        for kind in kinds:
            try:
                if self.dispatcher.dispatch(kind, app_id):
                    result.dispatched += 1
            except DispatchError as e:
                result.dispatch_failures += 1
                self._logger.error(
                    "Dispatch failed",
                    job_kind=kind.value,
                    app_id=app_id,
                    error=str(e),
                )
