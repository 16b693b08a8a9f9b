"""
SQLAlchemy models for the Steam catalog mirror.

One SteamApp row per Steam application id, a 1:1 detail record, one
table per nested collection keyed by (owner, natural key), shared lookup
tables joined through association tables, and the two coordination
tables used by the job layer.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


def _owner_fk() -> Mapped[int]:
    return mapped_column(ForeignKey("steam_apps.id", ondelete="CASCADE"), index=True)


# Association tables

steam_app_category = Table(
    "steam_app_category",
    Base.metadata,
    Column("steam_app_id", ForeignKey("steam_apps.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "steam_app_category_id",
        ForeignKey("steam_app_categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

steam_app_genre = Table(
    "steam_app_genre",
    Base.metadata,
    Column("steam_app_id", ForeignKey("steam_apps.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "steam_app_genre_id",
        ForeignKey("steam_app_genres.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

steam_app_developer = Table(
    "steam_app_developer",
    Base.metadata,
    Column("steam_app_id", ForeignKey("steam_apps.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "steam_app_developer_id",
        ForeignKey("steam_app_developers.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

steam_app_publisher = Table(
    "steam_app_publisher",
    Base.metadata,
    Column("steam_app_id", ForeignKey("steam_apps.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "steam_app_publisher_id",
        ForeignKey("steam_app_publishers.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


# Catalog


class SteamApp(TimestampMixin, Base):
    """Catalog entry, one per Steam application id."""

    __tablename__ = "steam_apps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appid: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    last_details_refresh_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_news_refresh_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    detail: Mapped[Optional["SteamAppDetail"]] = relationship(
        back_populates="steam_app", cascade="all, delete-orphan", passive_deletes=True
    )
    price_info: Mapped[Optional["SteamAppPriceInfo"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )

    categories: Mapped[list["SteamAppCategory"]] = relationship(secondary=steam_app_category)
    genres: Mapped[list["SteamAppGenre"]] = relationship(secondary=steam_app_genre)
    developers: Mapped[list["SteamAppDeveloper"]] = relationship(secondary=steam_app_developer)
    publishers: Mapped[list["SteamAppPublisher"]] = relationship(secondary=steam_app_publisher)

    @property
    def release_date(self) -> date | None:
        return self.detail.release_date if self.detail is not None else None

    def __repr__(self) -> str:
        return f"<SteamApp(appid={self.appid}, name={self.name!r})>"


class SteamAppDetail(TimestampMixin, Base):
    """Flat store metadata for one app."""

    __tablename__ = "steam_app_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = mapped_column(
        ForeignKey("steam_apps.id", ondelete="CASCADE"), unique=True
    )

    type: Mapped[str | None] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String(255))
    required_age: Mapped[int] = mapped_column(Integer, default=0)
    is_free: Mapped[bool] = mapped_column(Boolean, default=False)
    controller_support: Mapped[str | None] = mapped_column(String(32))

    detailed_description: Mapped[str | None] = mapped_column(Text)
    about_the_game: Mapped[str | None] = mapped_column(Text)
    short_description: Mapped[str | None] = mapped_column(Text)
    supported_languages: Mapped[str | None] = mapped_column(Text)
    legal_notice: Mapped[str | None] = mapped_column(Text)
    drm_notice: Mapped[str | None] = mapped_column(Text)

    header_image: Mapped[str | None] = mapped_column(String(512))
    capsule_image: Mapped[str | None] = mapped_column(String(512))
    capsule_imagev5: Mapped[str | None] = mapped_column(String(512))
    library_image: Mapped[str | None] = mapped_column(String(512))
    library_hero_image: Mapped[str | None] = mapped_column(String(512))
    background: Mapped[str | None] = mapped_column(String(512))
    background_raw: Mapped[str | None] = mapped_column(String(512))
    website: Mapped[str | None] = mapped_column(String(512))

    windows: Mapped[bool] = mapped_column(Boolean, default=False)
    mac: Mapped[bool] = mapped_column(Boolean, default=False)
    linux: Mapped[bool] = mapped_column(Boolean, default=False)

    release_date: Mapped[date | None] = mapped_column(Date, index=True)
    coming_soon: Mapped[bool] = mapped_column(Boolean, default=False)

    support_url: Mapped[str | None] = mapped_column(String(512))
    support_email: Mapped[str | None] = mapped_column(String(255))

    metacritic_score: Mapped[int | None] = mapped_column(Integer)
    metacritic_url: Mapped[str | None] = mapped_column(String(512))
    recommendations_total: Mapped[int | None] = mapped_column(BigInteger)
    achievements_total: Mapped[int | None] = mapped_column(Integer)
    content_descriptors_notes: Mapped[str | None] = mapped_column(Text)

    steam_app: Mapped[SteamApp] = relationship(back_populates="detail")


class SteamAppPriceInfo(TimestampMixin, Base):
    """Price snapshot, overwritten on every detail refresh."""

    __tablename__ = "steam_app_price_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = mapped_column(
        ForeignKey("steam_apps.id", ondelete="CASCADE"), unique=True
    )
    currency: Mapped[str | None] = mapped_column(String(8))
    initial: Mapped[int | None] = mapped_column(Integer)
    final: Mapped[int | None] = mapped_column(Integer)
    discount_percent: Mapped[int] = mapped_column(Integer, default=0)
    initial_formatted: Mapped[str | None] = mapped_column(String(64))
    final_formatted: Mapped[str | None] = mapped_column(String(64))


# Nested collections


class SteamAppRequirement(TimestampMixin, Base):
    __tablename__ = "steam_app_requirements"
    __table_args__ = (UniqueConstraint("steam_app_id", "platform"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    platform: Mapped[str] = mapped_column(String(8))  # pc, mac or linux
    minimum: Mapped[str | None] = mapped_column(Text)
    recommended: Mapped[str | None] = mapped_column(Text)


class SteamAppScreenshot(TimestampMixin, Base):
    __tablename__ = "steam_app_screenshots"
    __table_args__ = (UniqueConstraint("steam_app_id", "screenshot_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    screenshot_id: Mapped[int] = mapped_column(BigInteger)
    path_thumbnail: Mapped[str | None] = mapped_column(String(512))
    path_full: Mapped[str | None] = mapped_column(String(512))
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class SteamAppMovie(TimestampMixin, Base):
    __tablename__ = "steam_app_movies"
    __table_args__ = (UniqueConstraint("steam_app_id", "movie_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    movie_id: Mapped[int] = mapped_column(BigInteger)
    name: Mapped[str | None] = mapped_column(String(255))
    thumbnail: Mapped[str | None] = mapped_column(String(512))
    webm_480: Mapped[str | None] = mapped_column(String(512))
    webm_max: Mapped[str | None] = mapped_column(String(512))
    mp4_480: Mapped[str | None] = mapped_column(String(512))
    mp4_max: Mapped[str | None] = mapped_column(String(512))
    highlight: Mapped[bool] = mapped_column(Boolean, default=False)
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class SteamAppDlc(TimestampMixin, Base):
    __tablename__ = "steam_app_dlcs"
    __table_args__ = (UniqueConstraint("steam_app_id", "dlc_appid"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    dlc_appid: Mapped[int] = mapped_column(BigInteger)


class SteamAppDemo(TimestampMixin, Base):
    __tablename__ = "steam_app_demos"
    __table_args__ = (UniqueConstraint("steam_app_id", "demo_appid"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    demo_appid: Mapped[int] = mapped_column(BigInteger)
    description: Mapped[str | None] = mapped_column(String(255))


class SteamAppPackage(TimestampMixin, Base):
    __tablename__ = "steam_app_packages"
    __table_args__ = (UniqueConstraint("steam_app_id", "package_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    package_id: Mapped[int] = mapped_column(BigInteger)


class SteamAppPackageGroup(TimestampMixin, Base):
    __tablename__ = "steam_app_package_groups"
    __table_args__ = (UniqueConstraint("steam_app_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    name: Mapped[str] = mapped_column(String(255))
    title: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    selection_text: Mapped[str | None] = mapped_column(String(255))
    save_text: Mapped[str | None] = mapped_column(String(255))
    display_type: Mapped[int] = mapped_column(Integer, default=0)
    is_recurring_subscription: Mapped[str | None] = mapped_column(String(16))

    subs: Mapped[list["SteamAppPackageGroupSub"]] = relationship(
        back_populates="package_group", cascade="all, delete-orphan", passive_deletes=True
    )


class SteamAppPackageGroupSub(TimestampMixin, Base):
    __tablename__ = "steam_app_package_group_subs"
    __table_args__ = (UniqueConstraint("package_group_id", "package_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    package_group_id: Mapped[int] = mapped_column(
        ForeignKey("steam_app_package_groups.id", ondelete="CASCADE"), index=True
    )
    package_id: Mapped[int] = mapped_column(BigInteger)
    percent_savings_text: Mapped[str | None] = mapped_column(String(64))
    percent_savings: Mapped[int] = mapped_column(Integer, default=0)
    option_text: Mapped[str | None] = mapped_column(String(255))
    option_description: Mapped[str | None] = mapped_column(Text)
    can_get_free_license: Mapped[str | None] = mapped_column(String(16))
    is_free_license: Mapped[bool] = mapped_column(Boolean, default=False)
    price_in_cents_with_discount: Mapped[int | None] = mapped_column(BigInteger)

    package_group: Mapped[SteamAppPackageGroup] = relationship(back_populates="subs")


class SteamAppAchievementHighlighted(TimestampMixin, Base):
    __tablename__ = "steam_app_achievements_highlighted"
    __table_args__ = (UniqueConstraint("steam_app_id", "name", "path"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    name: Mapped[str] = mapped_column(String(255))
    path: Mapped[str | None] = mapped_column(String(512))


class SteamAppContentDescriptor(TimestampMixin, Base):
    __tablename__ = "steam_app_content_descriptor_ids"
    __table_args__ = (UniqueConstraint("steam_app_id", "descriptor_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    descriptor_id: Mapped[int] = mapped_column(Integer)


class SteamAppRating(TimestampMixin, Base):
    __tablename__ = "steam_app_ratings"
    __table_args__ = (UniqueConstraint("steam_app_id", "board"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    board: Mapped[str] = mapped_column(String(32))
    rating: Mapped[str | None] = mapped_column(String(64))
    descriptors: Mapped[str | None] = mapped_column(Text)
    display_online_notice: Mapped[str | None] = mapped_column(String(16))
    required_age: Mapped[str | None] = mapped_column(String(16))
    use_age_gate: Mapped[str | None] = mapped_column(String(16))
    banned: Mapped[str | None] = mapped_column(String(16))
    rating_generated: Mapped[str | None] = mapped_column(String(16))


# Shared lookups


class SteamAppCategory(TimestampMixin, Base):
    __tablename__ = "steam_app_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(Integer, unique=True)
    description: Mapped[str | None] = mapped_column(String(255))


class SteamAppGenre(TimestampMixin, Base):
    __tablename__ = "steam_app_genres"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    genre_id: Mapped[str] = mapped_column(String(32), unique=True)
    description: Mapped[str | None] = mapped_column(String(255))


class SteamAppDeveloper(TimestampMixin, Base):
    __tablename__ = "steam_app_developers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)


class SteamAppPublisher(TimestampMixin, Base):
    __tablename__ = "steam_app_publishers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)


# News and workshop


class SteamAppNews(TimestampMixin, Base):
    """News item. gid is unique across apps, items are never removed."""

    __tablename__ = "steam_app_news"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    gid: Mapped[str] = mapped_column(String(64), unique=True)
    title: Mapped[str] = mapped_column(String(512))
    url: Mapped[str | None] = mapped_column(Text)
    is_external_url: Mapped[bool] = mapped_column(Boolean, default=False)
    author: Mapped[str | None] = mapped_column(String(255))
    contents: Mapped[str | None] = mapped_column(Text)
    feedlabel: Mapped[str | None] = mapped_column(String(255))
    date: Mapped[int | None] = mapped_column(BigInteger)
    feedname: Mapped[str | None] = mapped_column(String(255))
    feed_type: Mapped[int] = mapped_column(Integer, default=0)
    tags: Mapped[list[str] | None] = mapped_column(JSON)


class SteamAppWorkshopItem(TimestampMixin, Base):
    """Workshop item merged from the listing and detail calls."""

    __tablename__ = "steam_app_workshop_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    steam_app_id: Mapped[int] = _owner_fk()
    publishedfileid: Mapped[int] = mapped_column(BigInteger, unique=True)
    creator: Mapped[str | None] = mapped_column(String(32), index=True)
    title: Mapped[str] = mapped_column(String(255))
    short_description: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    filename: Mapped[str | None] = mapped_column(String(255))
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    file_url: Mapped[str | None] = mapped_column(Text)
    preview_url: Mapped[str | None] = mapped_column(String(512))
    url: Mapped[str | None] = mapped_column(String(255))
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    banned: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    subscriptions: Mapped[int] = mapped_column(Integer, default=0)
    favorited: Mapped[int] = mapped_column(Integer, default=0)
    num_comments_public: Mapped[int] = mapped_column(Integer, default=0)
    time_created: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    time_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


# Job coordination


class JobLock(Base):
    """Uniqueness lock for one (job kind, app id) pair."""

    __tablename__ = "job_locks"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    owner: Mapped[str] = mapped_column(String(64))
    # null holds the lock until released
    expires_at: Mapped[float | None] = mapped_column(Float, nullable=True)


class RateLimitWindow(Base):
    """Earliest time the next rate limited execution may start."""

    __tablename__ = "rate_limit_windows"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    available_at: Mapped[float] = mapped_column(Float)
