"""
Data contracts for Steam Store appdetails responses.

These Pydantic models define the expected structure of the "data"
section returned by /appdetails and normalize it into the flat column
values and per-collection rows the upsert engine consumes.

Every collection builder returns None when its key was absent from the
payload (the collection is left untouched) and a list, possibly empty,
when it was present (the stored collection is reconciled to that list).
"""

import re
import datetime as dt
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, field_validator

RELEASE_DATE_PLACEHOLDERS = frozenset(
    {
        "coming soon",
        "tba",
        "to be announced",
        "to be determined",
    }
)

RELEASE_DATE_FORMATS = (
    "%Y-%m-%d",
    "%b %d, %Y",
    "%d %b, %Y",
    "%B %d, %Y",
    "%d %B, %Y",
    "%b %d %Y",
    "%d %b %Y",
    "%B %d %Y",
    "%d %B %Y",
    "%b %Y",
    "%B %Y",
)


def parse_release_date(value: str | None) -> dt.date | None:
    """
    Parse a Steam release date string.

    Returns None for missing values, placeholders such as "Coming soon"
    or "TBA" (any case) and anything that does not match a known format.
    """
    if not value:
        return None

    text = " ".join(value.split())
    if not text or text.lower() in RELEASE_DATE_PLACEHOLDERS:
        return None

    for fmt in RELEASE_DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def _to_text(v: Any) -> Any:
    """Stringify scalars Steam sends with inconsistent JSON types."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int | float):
        return str(v)
    return v


def _list_or_none(v: Any) -> Any:
    """Treat a non-list value as an absent collection."""
    return v if isinstance(v, list) else None


Text = Annotated[str | None, BeforeValidator(_to_text)]


class ReleaseDate(BaseModel):
    """Release date information."""

    coming_soon: bool = Field(default=False, description="Whether the app is not yet released")
    date: str | None = Field(default=None, description="Release date string as shown in the store")

    @property
    def parsed(self) -> dt.date | None:
        """Release date, or None when absent or a placeholder."""
        return parse_release_date(self.date)


class Platforms(BaseModel):
    """Platform availability."""

    windows: bool = Field(default=False)
    mac: bool = Field(default=False)
    linux: bool = Field(default=False)


class Requirements(BaseModel):
    """System requirements HTML for one platform."""

    minimum: str | None = None
    recommended: str | None = None


class Screenshot(BaseModel):
    """Store screenshot."""

    id: int | None = None
    path_thumbnail: str | None = None
    path_full: str | None = None


class MovieFormats(BaseModel):
    """Video URLs for one container format."""

    low: str | None = Field(default=None, alias="480")
    max: str | None = None


class Movie(BaseModel):
    """Store trailer."""

    id: int | None = None
    name: str | None = None
    thumbnail: str | None = None
    webm: MovieFormats | None = None
    mp4: MovieFormats | None = None
    highlight: bool = False


class Category(BaseModel):
    """Store category."""

    id: int | None = None
    description: str | None = None


class Genre(BaseModel):
    """Store genre."""

    id: Text = None
    description: str | None = None


class PriceOverview(BaseModel):
    """Price information in the smallest currency unit."""

    currency: str | None = None
    initial: int | None = None
    final: int | None = None
    discount_percent: int = Field(default=0, ge=0, le=100)
    initial_formatted: str | None = None
    final_formatted: str | None = None


class Metacritic(BaseModel):
    """Metacritic score information."""

    score: int | None = None
    url: str | None = None


class Recommendations(BaseModel):
    total: int | None = None


class HighlightedAchievement(BaseModel):
    name: str | None = None
    path: str | None = None


class Achievements(BaseModel):
    """Achievement totals and the store's highlighted subset."""

    total: int | None = None
    highlighted: Annotated[list[HighlightedAchievement] | None, BeforeValidator(_list_or_none)] = (
        None
    )


class Demo(BaseModel):
    appid: int | None = None
    description: str | None = None


class PackageGroupSub(BaseModel):
    """One purchasable package inside a package group."""

    packageid: int | None = None
    percent_savings_text: Text = None
    percent_savings: int = 0
    option_text: Text = None
    option_description: Text = None
    can_get_free_license: Text = None
    is_free_license: bool = False
    price_in_cents_with_discount: int | None = None


class PackageGroup(BaseModel):
    """Named group of purchase options."""

    name: Text = None
    title: Text = None
    description: Text = None
    selection_text: Text = None
    save_text: Text = None
    display_type: int = 0
    is_recurring_subscription: Text = None
    subs: Annotated[list[PackageGroupSub], BeforeValidator(lambda v: v or [])] = Field(
        default_factory=list
    )


class ContentDescriptors(BaseModel):
    """Mature content descriptors."""

    ids: Annotated[list[int] | None, BeforeValidator(_list_or_none)] = None
    notes: str | None = None


class Rating(BaseModel):
    """Age rating from one rating board."""

    rating: Text = None
    descriptors: Text = None
    display_online_notice: Text = None
    required_age: Text = None
    use_age_gate: Text = None
    banned: Text = None
    rating_generated: Text = None


class SupportInfo(BaseModel):
    url: str | None = None
    email: str | None = None


class AppDetailsPayload(BaseModel):
    """
    Complete app data from the Steam Store API.

    Represents the "data" section of the /appdetails response.
    """

    # Identifiers
    steam_appid: int | None = Field(default=None, description="Steam application ID")
    name: str = Field(..., description="App name")
    type: str | None = Field(default=None, description="Type: game, dlc, demo, etc.")

    # Description
    short_description: str | None = None
    detailed_description: str | None = None
    about_the_game: str | None = None
    supported_languages: str | None = None
    legal_notice: str | None = None
    drm_notice: str | None = None

    # Classification
    is_free: bool = False
    required_age: int = 0
    controller_support: str | None = None
    developers: Annotated[list[str] | None, BeforeValidator(_list_or_none)] = None
    publishers: Annotated[list[str] | None, BeforeValidator(_list_or_none)] = None
    categories: Annotated[list[Category] | None, BeforeValidator(_list_or_none)] = None
    genres: Annotated[list[Genre] | None, BeforeValidator(_list_or_none)] = None

    # Pricing
    price_overview: PriceOverview | None = None

    # Platforms and requirements
    platforms: Platforms = Field(default_factory=Platforms)
    pc_requirements: Requirements | list[Any] | None = None
    mac_requirements: Requirements | list[Any] | None = None
    linux_requirements: Requirements | list[Any] | None = None

    # Release
    release_date: ReleaseDate | None = None

    # Media
    header_image: str | None = None
    capsule_image: str | None = None
    capsule_imagev5: str | None = None
    background: str | None = None
    background_raw: str | None = None
    website: str | None = None
    screenshots: Annotated[list[Screenshot] | None, BeforeValidator(_list_or_none)] = None
    movies: Annotated[list[Movie] | None, BeforeValidator(_list_or_none)] = None

    # Related apps and packages
    dlc: Annotated[list[int] | None, BeforeValidator(_list_or_none)] = None
    demos: Annotated[list[Demo] | None, BeforeValidator(_list_or_none)] = None
    packages: Annotated[list[int] | None, BeforeValidator(_list_or_none)] = None
    package_groups: Annotated[list[PackageGroup] | None, BeforeValidator(_list_or_none)] = None

    # Reviews and ratings
    metacritic: Metacritic | None = None
    recommendations: Recommendations | None = None
    achievements: Achievements | None = None
    content_descriptors: ContentDescriptors | None = None
    ratings: dict[str, Rating] | None = None

    support_info: SupportInfo | None = None

    @field_validator("required_age", mode="before")
    @classmethod
    def coerce_required_age(cls, v: Any) -> int:
        """Convert required_age to int (API sometimes returns strings like "18+")."""
        if isinstance(v, bool) or v is None:
            return 0
        if isinstance(v, int):
            return v
        match = re.match(r"\s*(\d+)", str(v))
        return int(match.group(1)) if match else 0

    @field_validator("ratings", mode="before")
    @classmethod
    def drop_malformed_ratings(cls, v: Any) -> Any:
        """Keep only board entries that are objects."""
        if not isinstance(v, dict):
            return None
        return {board: value for board, value in v.items() if isinstance(value, dict)}

    @field_validator("price_overview", "metacritic", "recommendations", "achievements",
                     "content_descriptors", "support_info", "release_date", mode="before")
    @classmethod
    def empty_list_is_absent(cls, v: Any) -> Any:
        """Steam encodes some missing objects as []."""
        return None if isinstance(v, list) else v

    def detail_values(self) -> dict[str, Any]:
        """Flat column values for the app detail record."""
        release = self.release_date or ReleaseDate()
        return {
            "type": self.type,
            "name": self.name,
            "required_age": self.required_age,
            "is_free": self.is_free,
            "controller_support": self.controller_support,
            "detailed_description": self.detailed_description,
            "about_the_game": self.about_the_game,
            "short_description": self.short_description,
            "supported_languages": self.supported_languages,
            "header_image": self.header_image,
            "capsule_image": self.capsule_image,
            "capsule_imagev5": self.capsule_imagev5,
            "website": self.website,
            "legal_notice": self.legal_notice,
            "drm_notice": self.drm_notice,
            "windows": self.platforms.windows,
            "mac": self.platforms.mac,
            "linux": self.platforms.linux,
            "background": self.background,
            "background_raw": self.background_raw,
            "release_date": release.parsed,
            "coming_soon": release.coming_soon,
            "support_url": self.support_info.url if self.support_info else None,
            "support_email": self.support_info.email if self.support_info else None,
            "metacritic_score": self.metacritic.score if self.metacritic else None,
            "metacritic_url": self.metacritic.url if self.metacritic else None,
            "recommendations_total": (
                self.recommendations.total if self.recommendations else None
            ),
            "achievements_total": self.achievements.total if self.achievements else None,
            "content_descriptors_notes": (
                self.content_descriptors.notes if self.content_descriptors else None
            ),
        }

    def requirement_rows(self) -> list[dict[str, Any]] | None:
        """One row per platform key present; [] stores empty requirements."""
        present = [
            field for field in ("pc_requirements", "mac_requirements", "linux_requirements")
            if field in self.model_fields_set and getattr(self, field) is not None
        ]
        if not present:
            return None

        rows = []
        for field in present:
            value = getattr(self, field)
            if not isinstance(value, Requirements):
                value = Requirements()
            rows.append(
                {
                    "platform": field.removesuffix("_requirements"),
                    "minimum": value.minimum,
                    "recommended": value.recommended,
                }
            )
        return rows

    def screenshot_rows(self) -> list[dict[str, Any]] | None:
        if self.screenshots is None:
            return None
        return [
            {
                "screenshot_id": s.id,
                "path_thumbnail": s.path_thumbnail,
                "path_full": s.path_full,
            }
            for s in self.screenshots
        ]

    def movie_rows(self) -> list[dict[str, Any]] | None:
        if self.movies is None:
            return None
        return [
            {
                "movie_id": m.id,
                "name": m.name,
                "thumbnail": m.thumbnail,
                "webm_480": m.webm.low if m.webm else None,
                "webm_max": m.webm.max if m.webm else None,
                "mp4_480": m.mp4.low if m.mp4 else None,
                "mp4_max": m.mp4.max if m.mp4 else None,
                "highlight": m.highlight,
            }
            for m in self.movies
        ]

    def dlc_rows(self) -> list[dict[str, Any]] | None:
        if self.dlc is None:
            return None
        return [{"dlc_appid": appid} for appid in self.dlc]

    def demo_rows(self) -> list[dict[str, Any]] | None:
        if self.demos is None:
            return None
        return [{"demo_appid": d.appid, "description": d.description} for d in self.demos]

    def package_rows(self) -> list[dict[str, Any]] | None:
        if self.packages is None:
            return None
        return [{"package_id": package_id} for package_id in self.packages]

    def package_group_rows(self) -> list[dict[str, Any]] | None:
        """Package group rows, each carrying its subs under "subs"."""
        if self.package_groups is None:
            return None
        return [
            {
                "name": g.name,
                "title": g.title,
                "description": g.description,
                "selection_text": g.selection_text,
                "save_text": g.save_text,
                "display_type": g.display_type,
                "is_recurring_subscription": g.is_recurring_subscription,
                "subs": [
                    {
                        "package_id": s.packageid,
                        "percent_savings_text": s.percent_savings_text,
                        "percent_savings": s.percent_savings,
                        "option_text": s.option_text,
                        "option_description": s.option_description,
                        "can_get_free_license": s.can_get_free_license,
                        "is_free_license": s.is_free_license,
                        "price_in_cents_with_discount": s.price_in_cents_with_discount,
                    }
                    for s in g.subs
                ],
            }
            for g in self.package_groups
        ]

    def achievement_rows(self) -> list[dict[str, Any]] | None:
        if self.achievements is None:
            return None
        return [
            {"name": a.name, "path": a.path}
            for a in (self.achievements.highlighted or [])
        ]

    def content_descriptor_rows(self) -> list[dict[str, Any]] | None:
        if self.content_descriptors is None:
            return None
        return [{"descriptor_id": i} for i in (self.content_descriptors.ids or [])]

    def rating_rows(self) -> list[dict[str, Any]] | None:
        if self.ratings is None:
            return None
        return [
            {"board": board, **rating.model_dump()}
            for board, rating in self.ratings.items()
        ]

    def price_values(self) -> dict[str, Any] | None:
        if self.price_overview is None:
            return None
        return self.price_overview.model_dump()
