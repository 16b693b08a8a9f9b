"""
Batch selection of catalog entries for manual fetch runs.

Apps never fetched come first, then apps whose last refresh is older
than a cutoff, capped at the requested count.
"""

from datetime import datetime, timedelta
from typing import Literal

from sqlalchemy import select

from steam_apps_db.config import SchedulingConfig, get_settings
from steam_apps_db.persistence.database import Database
from steam_apps_db.persistence.models import SteamApp, utcnow

RefreshColumn = Literal["last_details_refresh_at", "last_news_refresh_at"]


def select_apps_to_process(
    database: Database,
    column: RefreshColumn,
    limit: int,
    stale_before: datetime,
) -> list[int]:
    """
    Pick up to limit app ids for a batch fetch.

    Args:
        database: Database holding the catalog
        column: Refresh timestamp the batch is about
        limit: Maximum number of apps
        stale_before: Refreshed apps qualify only if stamped before this

    Returns:
        list[int]: Steam app ids, never-fetched ones first
    """
    if limit <= 0:
        return []

    refreshed_at = getattr(SteamApp, column)
    with database.session() as session:
        app_ids = list(
            session.scalars(
                select(SteamApp.appid)
                .where(refreshed_at.is_(None))
                .order_by(SteamApp.id)
                .limit(limit)
            )
        )
        remaining = limit - len(app_ids)
        if remaining > 0:
            app_ids.extend(
                session.scalars(
                    select(SteamApp.appid)
                    .where(refreshed_at.is_not(None), refreshed_at < stale_before)
                    .order_by(refreshed_at, SteamApp.id)
                    .limit(remaining)
                )
            )
    return app_ids


def select_apps_for_details(
    database: Database,
    limit: int,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> list[int]:
    """Apps without details, then apps whose details are older than a year."""
    config = config or get_settings().schedule
    cutoff = (now or utcnow()) - timedelta(days=config.details_batch_max_age_days)
    return select_apps_to_process(database, "last_details_refresh_at", limit, cutoff)


def select_apps_for_news(
    database: Database,
    limit: int,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> list[int]:
    """Apps without news, then apps whose news are older than a month."""
    config = config or get_settings().schedule
    cutoff = (now or utcnow()) - timedelta(days=config.news_batch_max_age_days)
    return select_apps_to_process(database, "last_news_refresh_at", limit, cutoff)
