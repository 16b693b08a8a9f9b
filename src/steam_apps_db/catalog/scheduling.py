"""
Staleness policy for detail refreshes.

Decides whether a catalog entry is due for a details fetch based on
when it was last fetched and how long ago the app was released.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Protocol

from steam_apps_db.config import SchedulingConfig, get_settings


class ReleaseAge(str, Enum):
    """
    Release age buckets.

    Determines how often an app's details are refreshed.
    """

    RECENT = "recent"  # Unknown, future or released within recent_months
    MID = "mid"  # Released within mid_max_years
    OLD = "old"  # Everything older


class RefreshTracked(Protocol):
    """Anything carrying the fields the policy reads."""

    @property
    def last_details_refresh_at(self) -> datetime | None: ...

    @property
    def release_date(self) -> date | None: ...


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def whole_months_between(start: date, end: date) -> int:
    """Number of complete calendar months from start to end."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


class StalenessPolicy:
    """
    Refresh policy for catalog entries.

    Interval by release age:
    - RECENT: recent_days  (default 7)
    - MID:    mid_days     (default 30)
    - OLD:    old_days     (default 183)

    An entry is due once strictly more than its interval has passed
    since the last details fetch. Entries never fetched are always due.
    """

    def __init__(self, config: SchedulingConfig | None = None) -> None:
        self.config = config or get_settings().schedule

    def classify_release_age(self, release_date: date | None, now: datetime) -> ReleaseAge:
        """
        Bucket an app by the time since its release.

        Args:
            release_date: Parsed release date (None = unknown)
            now: Reference time

        Returns:
            ReleaseAge: Age bucket
        """
        today = _as_utc(now).date()
        if release_date is None or release_date > today:
            return ReleaseAge.RECENT

        months = whole_months_between(release_date, today)
        if months < self.config.recent_months:
            return ReleaseAge.RECENT
        if months // 12 < self.config.mid_max_years:
            return ReleaseAge.MID
        return ReleaseAge.OLD

    def required_interval(self, age: ReleaseAge) -> timedelta:
        days = {
            ReleaseAge.RECENT: self.config.recent_days,
            ReleaseAge.MID: self.config.mid_days,
            ReleaseAge.OLD: self.config.old_days,
        }[age]
        return timedelta(days=days)

    def should_refresh_details(self, entry: RefreshTracked, now: datetime | None = None) -> bool:
        """
        Check whether an entry is due for a details fetch.

        Args:
            entry: Catalog entry (or any object with the same fields)
            now: Reference time (defaults to the current UTC time)

        Returns:
            bool: True if the entry should be fetched
        """
        now = _as_utc(now or datetime.now(timezone.utc))
        last = entry.last_details_refresh_at
        if last is None:
            return True

        age = self.classify_release_age(entry.release_date, now)
        return now - _as_utc(last) > self.required_interval(age)
