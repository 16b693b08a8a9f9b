"""
Data contracts for Steam API responses.

This module provides Pydantic models that define the expected
structure of data from the Steam APIs. Validating into these models
is the single normalization step between raw JSON and the database.
"""

from steam_apps_db.ingestion.contracts.app_details import (
    AppDetailsPayload,
    Category,
    Genre,
    Metacritic,
    PackageGroup,
    PackageGroupSub,
    Platforms,
    PriceOverview,
    Rating,
    ReleaseDate,
    Requirements,
    Screenshot,
    parse_release_date,
)
from steam_apps_db.ingestion.contracts.app_list import AppListItem
from steam_apps_db.ingestion.contracts.news import NewsItemPayload
from steam_apps_db.ingestion.contracts.workshop import (
    WorkshopDetailItem,
    WorkshopQueryItem,
    merge_workshop_item,
)

__all__ = [
    "AppDetailsPayload",
    "AppListItem",
    "Category",
    "Genre",
    "Metacritic",
    "NewsItemPayload",
    "PackageGroup",
    "PackageGroupSub",
    "Platforms",
    "PriceOverview",
    "Rating",
    "ReleaseDate",
    "Requirements",
    "Screenshot",
    "WorkshopDetailItem",
    "WorkshopQueryItem",
    "merge_workshop_item",
    "parse_release_date",
]
