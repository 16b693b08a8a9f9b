"""
Domain errors shared by the gateway, the fetch orchestrators and the job layer.
"""

from datetime import datetime, timezone


class SteamAppsDbError(Exception):
    """Base exception for all steam-apps-db failures."""

    def __init__(
        self,
        message: str,
        *,
        app_id: int | None = None,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.app_id = app_id
        self.status_code = status_code
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)


class SteamApiError(SteamAppsDbError):
    """Raised when an upstream call fails or returns an unexpected shape."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        app_id: int | None = None,
        status_code: int | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            app_id=app_id,
            status_code=status_code,
            original_error=original_error,
        )
        self.endpoint = endpoint


class RateLimitError(SteamApiError):
    """Raised when Steam answers 429."""

    pass


class AppSyncError(SteamAppsDbError):
    """Raised when fetching or storing data for one app fails."""

    pass


class DispatchError(SteamAppsDbError):
    """Raised when a job cannot be pushed to the queue."""

    pass
