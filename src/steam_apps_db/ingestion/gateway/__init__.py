"""
Gateway to the Steam Web API and Store API.

All upstream HTTP traffic goes through the clients in this package,
built on a common base with retry logic and structured logging.
"""

from steam_apps_db.ingestion.gateway.base import BaseClient, is_transient
from steam_apps_db.ingestion.gateway.steam_api import SteamApiClient

__all__ = [
    "BaseClient",
    "SteamApiClient",
    "is_transient",
]
