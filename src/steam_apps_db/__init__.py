"""
steam-apps-db.

Local relational mirror of the Steam app catalog: imports the app
list, schedules detail / news / workshop fetches per app and reconciles
the fetched data into normalized tables.
"""

from steam_apps_db.config import Settings, get_settings
from steam_apps_db.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
