"""Tests for batch selection of apps to fetch."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from steam_apps_db.catalog import (
    select_apps_for_details,
    select_apps_for_news,
    select_apps_to_process,
)
from steam_apps_db.config import SchedulingConfig
from steam_apps_db.persistence import Database

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestSelectAppsForDetails:
    """Never fetched first, then apps refreshed more than a year ago."""

    @pytest.fixture
    def catalog(self, add_app: Callable[..., int]) -> None:
        add_app(10, last_details_refresh_at=NOW - timedelta(days=400))
        add_app(20)
        add_app(30, last_details_refresh_at=NOW - timedelta(days=10))
        add_app(40, last_details_refresh_at=NOW - timedelta(days=800))
        add_app(50)

    @pytest.mark.usefixtures("catalog")
    def test_never_fetched_then_oldest(self, database: Database) -> None:
        assert select_apps_for_details(
            database, 10, now=NOW, config=SchedulingConfig()
        ) == [20, 50, 40, 10]

    @pytest.mark.usefixtures("catalog")
    def test_limit_prefers_never_fetched(self, database: Database) -> None:
        assert select_apps_for_details(database, 2, now=NOW, config=SchedulingConfig()) == [20, 50]
        assert select_apps_for_details(database, 3, now=NOW, config=SchedulingConfig()) == [
            20,
            50,
            40,
        ]

    @pytest.mark.usefixtures("catalog")
    def test_zero_limit(self, database: Database) -> None:
        assert select_apps_for_details(database, 0, now=NOW, config=SchedulingConfig()) == []

    def test_recent_refreshes_are_left_out(
        self, database: Database, add_app: Callable[..., int]
    ) -> None:
        add_app(10, last_details_refresh_at=NOW - timedelta(days=364))

        assert select_apps_for_details(database, 10, now=NOW, config=SchedulingConfig()) == []


class TestSelectAppsForNews:
    """News use their own stamp and a one month cutoff."""

    def test_uses_news_stamp(self, database: Database, add_app: Callable[..., int]) -> None:
        add_app(10, last_news_refresh_at=NOW - timedelta(days=31))
        add_app(20, last_news_refresh_at=NOW - timedelta(days=5))
        add_app(30, last_details_refresh_at=NOW)

        assert select_apps_for_news(database, 10, now=NOW, config=SchedulingConfig()) == [30, 10]

    def test_cutoff_is_configurable(self, database: Database, add_app: Callable[..., int]) -> None:
        add_app(10, last_news_refresh_at=NOW - timedelta(days=5))
        config = SchedulingConfig(news_batch_max_age_days=1)

        assert select_apps_for_news(database, 10, now=NOW, config=config) == [10]


def test_select_apps_to_process_empty_catalog(database: Database) -> None:
    assert select_apps_to_process(database, "last_details_refresh_at", 5, NOW) == []
