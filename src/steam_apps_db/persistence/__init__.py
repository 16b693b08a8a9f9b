"""
Relational persistence for the Steam catalog mirror.
"""

from steam_apps_db.persistence.database import Database
from steam_apps_db.persistence.models import Base, SteamApp, SteamAppDetail

__all__ = [
    "Base",
    "Database",
    "SteamApp",
    "SteamAppDetail",
]
