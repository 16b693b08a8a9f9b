"""
Steam API gateway.

Wraps the upstream operations the sync engine depends on: the full
app list, store app details, app news, workshop listing and workshop
item details, plus best-effort probes for static library images.
"""

from typing import Any

import httpx

from steam_apps_db.config import SteamAPIConfig, get_settings
from steam_apps_db.errors import SteamApiError
from steam_apps_db.ingestion.gateway.base import BaseClient


def _section(data: Any, name: str) -> dict[str, Any]:
    """Return data[name] when both are objects, else an empty dict."""
    section = data.get(name) if isinstance(data, dict) else None
    return section if isinstance(section, dict) else {}


class SteamApiClient(BaseClient):
    """
    Client for the Steam Web API and Store API.

    Every method either returns the payload section the orchestrators
    consume or raises SteamApiError.

    Example:
        >>> async with SteamApiClient() as client:
        ...     details = await client.get_app_details(1091500)
        ...     print(details["name"])
    """

    source_name = "steam_api"

    APP_LIST_PATH = "/ISteamApps/GetAppList/v2/"
    APP_NEWS_PATH = "/ISteamNews/GetNewsForApp/v2/"
    WORKSHOP_QUERY_PATH = "/IPublishedFileService/QueryFiles/v1/"
    PUBLISHED_FILE_DETAILS_PATH = "/ISteamRemoteStorage/GetPublishedFileDetails/v1/"

    def __init__(
        self,
        *,
        steam_config: SteamAPIConfig | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the Steam API client.

        Args:
            steam_config: Endpoint configuration (uses global settings if None)
            **kwargs: Arguments passed to BaseClient
        """
        self._steam = steam_config or get_settings().steam
        kwargs.setdefault("timeout", self._steam.timeout_seconds)
        super().__init__(**kwargs)

    async def __aenter__(self) -> "SteamApiClient":
        """Async context manager entry."""
        return self

    @property
    def app_details_url(self) -> str:
        return f"{self._steam.store_url}/appdetails"

    def library_image_url(self, app_id: int) -> str:
        """URL of the 600x900 library capsule for an app."""
        return f"{self._steam.assets_url}/{app_id}/library_600x900.jpg"

    def library_hero_image_url(self, app_id: int) -> str:
        """URL of the library hero banner for an app."""
        return f"{self._steam.assets_url}/{app_id}/library_hero.jpg"

    async def get_app_list(self) -> list[dict[str, Any]]:
        """
        Fetch the list of all Steam apps.

        Returns:
            list[dict]: Items shaped like {"appid": int, "name": str}

        Raises:
            SteamApiError: On HTTP failure or unexpected response shape
        """
        url = f"{self._steam.base_url}{self.APP_LIST_PATH}"
        data = await self._get_json("GET", url, params={"format": "json"})

        apps = _section(data, "applist").get("apps")
        if not isinstance(apps, list):
            raise SteamApiError("Invalid response format from Steam API", endpoint=url)

        self._logger.info("Fetched app list", total_apps=len(apps))
        return apps

    async def get_app_details(self, app_id: int) -> dict[str, Any]:
        """
        Fetch store details for a Steam app.

        Args:
            app_id: Steam application ID

        Returns:
            dict: The "data" section of the appdetails response

        Raises:
            SteamApiError: On HTTP failure, success=false or missing data
        """
        url = self.app_details_url
        data = await self._get_json(
            "GET",
            url,
            app_id=app_id,
            params={
                "appids": app_id,
                "cc": self._steam.country_code,
                "l": self._steam.language,
            },
        )

        entry = data.get(str(app_id)) if isinstance(data, dict) else None
        if not isinstance(entry, dict) or not entry.get("success") or not isinstance(
            entry.get("data"), dict
        ):
            raise SteamApiError(
                f"Steam API returned no details for app_id={app_id}: {str(data)[:200]}",
                endpoint=url,
                app_id=app_id,
            )

        return entry["data"]  # type: ignore[no-any-return]

    async def get_app_news(self, app_id: int) -> dict[str, Any]:
        """
        Fetch news for a Steam app.

        Returns:
            dict: The "appnews" section, guaranteed to contain "newsitems"

        Raises:
            SteamApiError: On HTTP failure or missing appnews.newsitems
        """
        url = f"{self._steam.base_url}{self.APP_NEWS_PATH}"
        data = await self._get_json(
            "GET",
            url,
            app_id=app_id,
            params={
                "appid": app_id,
                "count": self._steam.news_count,
                "maxlength": 0,
                "format": "json",
            },
        )

        news = data.get("appnews") if isinstance(data, dict) else None
        if not isinstance(news, dict) or not isinstance(news.get("newsitems"), list):
            raise SteamApiError(
                f"Steam API returned no news for app_id={app_id}: {str(data)[:200]}",
                endpoint=url,
                app_id=app_id,
            )

        return news

    async def query_workshop_files(self, app_id: int, cursor: str = "*") -> dict[str, Any]:
        """
        Fetch one cursor page of workshop items for an app.

        Returns:
            dict: The "response" section with "publishedfiledetails" and "next_cursor"
        """
        url = f"{self._steam.base_url}{self.WORKSHOP_QUERY_PATH}"
        params: dict[str, Any] = {
            "appid": app_id,
            "cursor": cursor,
            "numperpage": self._steam.workshop_page_size,
            "query_type": 1,
            "return_short_description": "true",
            "return_metadata": "true",
        }
        if self._steam.api_key is not None:
            params["key"] = self._steam.api_key.get_secret_value()

        data = await self._get_json("GET", url, app_id=app_id, params=params)

        response = data.get("response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            raise SteamApiError(
                f"Invalid workshop query response for app_id={app_id}",
                endpoint=url,
                app_id=app_id,
            )
        return response

    async def get_published_file_details(self, file_ids: list[str]) -> list[dict[str, Any]]:
        """
        Fetch full details for a batch of workshop items.

        Args:
            file_ids: Published file ids as returned by the listing call

        Returns:
            list[dict]: One detail record per published file
        """
        if not file_ids:
            return []

        url = f"{self._steam.base_url}{self.PUBLISHED_FILE_DETAILS_PATH}"
        form: dict[str, Any] = {"itemcount": len(file_ids)}
        for index, file_id in enumerate(file_ids):
            form[f"publishedfileids[{index}]"] = file_id

        data = await self._get_json("POST", url, data=form)

        details = _section(data, "response").get("publishedfiledetails")
        if not isinstance(details, list):
            raise SteamApiError("Invalid published file details response", endpoint=url)
        return details

    async def probe_image(self, url: str) -> str | None:
        """
        Check whether a static image exists.

        Tries HEAD first and falls back to GET. Network errors are
        treated as "does not exist".

        Returns:
            str | None: The url when the image exists, otherwise None
        """
        try:
            response = await self.client.head(url)
            if response.is_success:
                return url

            response = await self.client.get(url)
            if response.is_success:
                return url
        except httpx.HTTPError as e:
            self._logger.debug("Image probe failed", url=url, error=str(e))

        return None
