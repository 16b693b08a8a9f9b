"""
Shared plumbing for the per-app fetch orchestrators.
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select, update

from steam_apps_db.ingestion.gateway import SteamApiClient
from steam_apps_db.logger import get_logger
from steam_apps_db.persistence.database import Database
from steam_apps_db.persistence.models import SteamApp, utcnow


class AppFetcher:
    """
    Base class for orchestrators that fetch and store data for one app.

    Subclasses resolve the catalog entry, call the gateway, stamp their
    refresh timestamp and store the payload in one transaction.
    """

    component = "fetcher"

    def __init__(
        self,
        client: SteamApiClient,
        database: Database,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.client = client
        self.database = database
        self._clock = clock
        self._logger = get_logger(self.__class__.__name__, component=self.component)

    def _find_entry_id(self, app_id: int) -> int | None:
        with self.database.session() as session:
            return session.scalar(select(SteamApp.id).where(SteamApp.appid == app_id))

    def _stamp(self, entry_id: int, column: str) -> None:
        """Record the refresh time in its own commit."""
        with self.database.transaction() as session:
            session.execute(
                update(SteamApp).where(SteamApp.id == entry_id).values({column: self._clock()})
            )
