"""
Base HTTP client with retry logic and error handling.

Provides a foundation for the Steam API gateway with exponential
backoff on transient failures and structured logging.
"""

from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from steam_apps_db.config import RetryConfig, get_settings
from steam_apps_db.errors import RateLimitError, SteamApiError
from steam_apps_db.logger import get_logger


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth retrying at the transport level."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, SteamApiError) and exc.status_code is not None:
        return exc.status_code == 429 or exc.status_code >= 500
    return False


class BaseClient:
    """
    Base class for upstream HTTP clients.

    Provides common functionality including:
    - HTTP client management
    - Retry logic with exponential backoff
    - Mapping of HTTP failures to SteamApiError
    - Structured logging
    """

    source_name = "http"

    def __init__(
        self,
        *,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            retry_config: Custom retry configuration (uses defaults if None)
            timeout: HTTP request timeout in seconds
            client: Preconfigured httpx client (created lazily if None)
        """
        settings = get_settings()
        self._retry_config = retry_config or settings.retry
        self._timeout = timeout or settings.steam.timeout_seconds
        self._logger = get_logger(
            self.__class__.__name__,
            component="gateway",
            source=self.source_name,
        )
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": "SteamAppsDb/0.1",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _create_retry_decorator(self) -> Any:
        """Create retry decorator with current configuration."""
        return retry(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self._retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=self._retry_config.base_delay_seconds,
                max=self._retry_config.max_delay_seconds,
                exp_base=self._retry_config.exponential_base,
            ),
            before_sleep=self._log_retry_attempt,
            reraise=True,
        )

    def _log_retry_attempt(self, retry_state: Any) -> None:
        """Log retry attempts for observability."""
        self._logger.warning(
            "Retrying request",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _make_request(
        self,
        method: str,
        url: str,
        *,
        app_id: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            app_id: App the request is made for, attached to raised errors
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response: Successful response

        Raises:
            RateLimitError: If rate limit exceeded after retries
            SteamApiError: For error responses and transport failures
        """
        retry_decorator = self._create_retry_decorator()

        @retry_decorator
        async def _request() -> httpx.Response:
            self._logger.debug("Making request", method=method, url=url)

            response = await self.client.request(method, url, **kwargs)

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "60")
                raise RateLimitError(
                    f"Rate limit exceeded. Retry after {retry_after}s",
                    endpoint=url,
                    app_id=app_id,
                    status_code=429,
                )

            if response.status_code >= 400:
                raise SteamApiError(
                    f"Steam API response status: {response.status_code}",
                    endpoint=url,
                    app_id=app_id,
                    status_code=response.status_code,
                )

            return response

        try:
            return await _request()  # type: ignore[no-any-return]
        except httpx.HTTPError as e:
            self._logger.error(
                "Request failed after retries",
                url=url,
                attempts=self._retry_config.max_attempts,
                error=str(e),
            )
            raise SteamApiError(
                f"Request to {url} failed: {e}",
                endpoint=url,
                app_id=app_id,
                original_error=e,
            ) from e

    async def _get_json(
        self,
        method: str,
        url: str,
        *,
        app_id: int | None = None,
        **kwargs: Any,
    ) -> Any:
        """Make a request and decode its JSON body."""
        response = await self._make_request(method, url, app_id=app_id, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise SteamApiError(
                f"Invalid JSON from {url}: {response.text[:200]}",
                endpoint=url,
                app_id=app_id,
                status_code=response.status_code,
                original_error=e,
            ) from e
