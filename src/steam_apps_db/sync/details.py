"""
Details fetch orchestrator.
"""

from steam_apps_db.errors import AppSyncError
from steam_apps_db.ingestion.contracts import AppDetailsPayload
from steam_apps_db.persistence.models import SteamApp
from steam_apps_db.persistence.reconcile import ReconcileResult
from steam_apps_db.persistence.store import save_app_details
from steam_apps_db.sync.base import AppFetcher


class DetailsFetcher(AppFetcher):
    """
    Fetches store details for one app and reconciles them into the database.

    Example:
        >>> fetcher = DetailsFetcher(client, database)
        >>> await fetcher.fetch_details(1091500)
    """

    component = "details_fetcher"

    async def fetch_details(self, app_id: int) -> dict[str, ReconcileResult] | None:
        """
        Fetch and store details for an app.

        Unknown app ids are a no-op. After a successful fetch the
        last_details_refresh_at stamp is committed before anything is
        stored, so a payload that cannot be stored does not keep the app
        due. The detail row and every nested collection are then written
        in one transaction.

        Args:
            app_id: Steam application ID

        Returns:
            dict | None: Reconciliation results per table, None if the app is unknown

        Raises:
            AppSyncError: If fetching or storing fails
        """
        entry_id = self._find_entry_id(app_id)
        if entry_id is None:
            self._logger.debug("App not in catalog, skipping", app_id=app_id)
            return None

        try:
            data = await self.client.get_app_details(app_id)
        except Exception as e:
            raise AppSyncError(
                f"Failed to fetch details for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._stamp(entry_id, "last_details_refresh_at")

        try:
            payload = AppDetailsPayload.model_validate(data)
            images = {
                "library_image": await self.client.probe_image(
                    self.client.library_image_url(app_id)
                ),
                "library_hero_image": await self.client.probe_image(
                    self.client.library_hero_image_url(app_id)
                ),
            }

            with self.database.transaction() as session:
                entry = session.get(SteamApp, entry_id)
                if entry is None:
                    return None
                results = save_app_details(session, entry, payload, images)
        except Exception as e:
            self._logger.error("Failed to store details", app_id=app_id, error=str(e))
            raise AppSyncError(
                f"Failed to store details for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._logger.info(
            "Details stored",
            app_id=app_id,
            changed=sorted(name for name, result in results.items() if result.changed),
        )
        return results
