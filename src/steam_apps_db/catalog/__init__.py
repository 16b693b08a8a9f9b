"""
Catalog import, refresh scheduling and batch selection.
"""

from steam_apps_db.catalog.importer import CatalogImporter, ImportResult
from steam_apps_db.catalog.scheduling import ReleaseAge, StalenessPolicy
from steam_apps_db.catalog.selection import (
    select_apps_for_details,
    select_apps_for_news,
    select_apps_to_process,
)

__all__ = [
    "CatalogImporter",
    "ImportResult",
    "ReleaseAge",
    "StalenessPolicy",
    "select_apps_for_details",
    "select_apps_for_news",
    "select_apps_to_process",
]
