"""
Workshop fetch orchestrator.
"""

from steam_apps_db.errors import AppSyncError
from steam_apps_db.ingestion.contracts import (
    WorkshopDetailItem,
    WorkshopQueryItem,
    merge_workshop_item,
)
from steam_apps_db.persistence.models import SteamApp
from steam_apps_db.persistence.store import save_workshop_items
from steam_apps_db.sync.base import AppFetcher

FIRST_CURSOR = "*"


class WorkshopFetcher(AppFetcher):
    """Fetches one cursor page of workshop items for an app."""

    component = "workshop_fetcher"

    async def fetch_page(self, app_id: int, cursor: str = FIRST_CURSOR) -> str | None:
        """
        Fetch, merge and store one page of workshop items.

        Args:
            app_id: Steam application ID
            cursor: Cursor returned by the previous page ("*" for the first)

        Returns:
            str | None: Cursor of the next page, None when the listing is
            empty, the cursor did not advance or the app is unknown

        Raises:
            AppSyncError: If fetching or storing fails
        """
        entry_id = self._find_entry_id(app_id)
        if entry_id is None:
            self._logger.debug("App not in catalog, skipping", app_id=app_id)
            return None

        try:
            listing = await self.client.query_workshop_files(app_id, cursor)
            raw_items = listing.get("publishedfiledetails") or []
            next_cursor = listing.get("next_cursor")
            if not raw_items:
                return None

            query_items = [WorkshopQueryItem.model_validate(item) for item in raw_items]
            raw_details = await self.client.get_published_file_details(
                [item.publishedfileid for item in query_items if item.ok]
            )
            details = {
                detail.publishedfileid: detail
                for detail in (WorkshopDetailItem.model_validate(d) for d in raw_details)
            }

            merged = []
            for item in query_items:
                values = merge_workshop_item(item, details.get(item.publishedfileid))
                if values is not None:
                    merged.append(values)

            with self.database.transaction() as session:
                entry = session.get(SteamApp, entry_id)
                if entry is None:
                    return None
                result = save_workshop_items(session, entry, merged)
        except Exception as e:
            self._logger.error("Workshop fetch failed", app_id=app_id, cursor=cursor, error=str(e))
            raise AppSyncError(
                f"Workshop fetch error for app_id={app_id}: {e}",
                app_id=app_id,
                original_error=e,
            ) from e

        self._logger.info(
            "Workshop page stored",
            app_id=app_id,
            cursor=cursor,
            items=len(merged),
            inserted=result.inserted,
        )

        if not next_cursor or next_cursor == cursor:
            return None
        return str(next_cursor)
