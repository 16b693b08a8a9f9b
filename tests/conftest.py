"""Shared fixtures: a SQLite database per test and fast configs."""

import json
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, cast

import pytest

from steam_apps_db.config import (
    DatabaseConfig,
    QueueConfig,
    RetryConfig,
    SchedulingConfig,
    SteamAPIConfig,
)
from steam_apps_db.persistence import Database, SteamApp

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database(tmp_path: Path) -> Iterator[Database]:
    """Fresh schema in a temporary SQLite file."""
    db = Database(DatabaseConfig(url=f"sqlite:///{tmp_path / 'steam_apps.db'}"))
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def add_app(database: Database) -> Callable[..., int]:
    """Insert a catalog entry and return its primary key."""

    def _add(
        appid: int,
        name: str = "Test App",
        last_details_refresh_at: datetime | None = None,
        last_news_refresh_at: datetime | None = None,
    ) -> int:
        with database.transaction() as session:
            entry = SteamApp(
                appid=appid,
                name=name,
                last_details_refresh_at=last_details_refresh_at,
                last_news_refresh_at=last_news_refresh_at,
            )
            session.add(entry)
            session.flush()
            return entry.id

    return _add


@pytest.fixture
def steam_config() -> SteamAPIConfig:
    return SteamAPIConfig(api_key="test_api_key_123")


@pytest.fixture
def retry_config() -> RetryConfig:
    """One retry without waiting."""
    return RetryConfig(max_attempts=2, base_delay_seconds=0.0, max_delay_seconds=0.0)


@pytest.fixture
def queue_config() -> QueueConfig:
    """No spacing and no backoff so queues drain immediately."""
    return QueueConfig(decay_seconds=0.0, backoff_seconds=0.0, tries=3)


@pytest.fixture
def schedule_config() -> SchedulingConfig:
    return SchedulingConfig()


@pytest.fixture
def app_details_response() -> dict[str, Any]:
    """Steam Store appdetails response for app 1091500."""
    with (FIXTURES_DIR / "app_details_response.json").open(encoding="utf-8") as f:
        return cast(dict[str, Any], json.load(f))


@pytest.fixture
def app_details_data(app_details_response: dict[str, Any]) -> dict[str, Any]:
    """The "data" section of the appdetails fixture."""
    return cast(dict[str, Any], app_details_response["1091500"]["data"])
