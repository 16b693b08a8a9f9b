"""
News fetch orchestrator.
"""

from steam_apps_db.errors import AppSyncError
from steam_apps_db.ingestion.contracts import NewsItemPayload
from steam_apps_db.persistence.models import SteamApp
from steam_apps_db.persistence.reconcile import ReconcileResult
from steam_apps_db.persistence.store import save_news
from steam_apps_db.sync.base import AppFetcher


class NewsFetcher(AppFetcher):
    """Fetches news for one app and upserts it by gid."""

    component = "news_fetcher"

    async def fetch_news(self, app_id: int) -> ReconcileResult | None:
        """
        Fetch and store news for an app.

        Same sequence as the details fetch: no-op for unknown apps,
        last_news_refresh_at committed after a successful fetch, items
        stored in one transaction.

        Raises:
            AppSyncError: If fetching or storing fails
        """
        entry_id = self._find_entry_id(app_id)
        if entry_id is None:
            self._logger.debug("App not in catalog, skipping", app_id=app_id)
            return None

        try:
            news = await self.client.get_app_news(app_id)
        except Exception as e:
            raise AppSyncError(
                f"Failed to fetch news for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._stamp(entry_id, "last_news_refresh_at")

        try:
            items = [NewsItemPayload.model_validate(item) for item in news["newsitems"]]
            with self.database.transaction() as session:
                entry = session.get(SteamApp, entry_id)
                if entry is None:
                    return None
                result = save_news(session, entry, items)
        except Exception as e:
            self._logger.error("Failed to store news", app_id=app_id, error=str(e))
            raise AppSyncError(
                f"Failed to store news for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._logger.info(
            "News stored",
            app_id=app_id,
            inserted=result.inserted,
            updated=result.updated,
        )
        return result
