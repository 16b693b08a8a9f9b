"""
Per-app fetch orchestrators, their job handlers and batch runs.
"""

from steam_apps_db.sync.batch import BatchResult, run_batch
from steam_apps_db.sync.details import DetailsFetcher
from steam_apps_db.sync.handlers import build_handlers
from steam_apps_db.sync.news import NewsFetcher
from steam_apps_db.sync.workshop import WorkshopFetcher

__all__ = [
    "BatchResult",
    "DetailsFetcher",
    "NewsFetcher",
    "WorkshopFetcher",
    "build_handlers",
    "run_batch",
]
