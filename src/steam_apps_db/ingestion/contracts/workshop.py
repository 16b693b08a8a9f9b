"""
Data contracts for Steam Workshop responses.

Workshop items arrive from two calls: the paginated QueryFiles listing
and the batch GetPublishedFileDetails call. merge_workshop_item joins
one record of each into the column values stored per item.
"""

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

WORKSHOP_ITEM_URL = "https://steamcommunity.com/sharedfiles/filedetails/?id={id}"

RESULT_OK = 1


def _to_id(v: Any) -> Any:
    return str(v) if isinstance(v, int) else v


FileId = Annotated[str, BeforeValidator(_to_id)]


class WorkshopTag(BaseModel):
    tag: str | None = None


class WorkshopQueryItem(BaseModel):
    """One record of the QueryFiles listing."""

    publishedfileid: FileId
    result: int = RESULT_OK
    title: str | None = None
    short_description: str | None = None
    preview_url: str | None = None
    views: int | None = None
    subscriptions: int | None = None
    favorited: int | None = None
    time_created: int | None = None
    time_updated: int | None = None

    @property
    def ok(self) -> bool:
        return self.result == RESULT_OK


class WorkshopDetailItem(BaseModel):
    """One record of GetPublishedFileDetails."""

    publishedfileid: FileId
    result: int = RESULT_OK
    creator: Annotated[str | None, BeforeValidator(_to_id)] = None
    title: str | None = None
    description: str | None = None
    filename: str | None = None
    file_size: int = 0
    file_url: str | None = None
    preview_url: str | None = None
    tags: list[WorkshopTag] = Field(default_factory=list)
    banned: bool = False
    views: int | None = None
    subscriptions: int | None = None
    favorited: int | None = None
    num_comments_public: int = 0


def _timestamp(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _first(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def merge_workshop_item(
    listing: WorkshopQueryItem,
    detail: WorkshopDetailItem | None,
) -> dict[str, Any] | None:
    """
    Join a listing record with its detail record.

    Listing values take precedence over detail values for the fields
    both calls return. Returns None when the listing reports an error
    or no detail record exists.
    """
    if not listing.ok or detail is None:
        return None

    tags = [t.tag for t in detail.tags if t.tag]

    return {
        "publishedfileid": int(listing.publishedfileid),
        "creator": detail.creator,
        "title": _first(listing.title, detail.title, default="Untitled"),
        "short_description": listing.short_description,
        "description": detail.description,
        "filename": detail.filename,
        "file_size": detail.file_size,
        "file_url": detail.file_url,
        "preview_url": _first(listing.preview_url, detail.preview_url),
        "url": WORKSHOP_ITEM_URL.format(id=listing.publishedfileid),
        "tags": tags or None,
        "banned": detail.banned,
        "views": _first(listing.views, detail.views, default=0),
        "subscriptions": _first(listing.subscriptions, detail.subscriptions, default=0),
        "favorited": _first(listing.favorited, detail.favorited, default=0),
        "num_comments_public": detail.num_comments_public,
        "time_created": _timestamp(listing.time_created),
        "time_updated": _timestamp(listing.time_updated),
    }
