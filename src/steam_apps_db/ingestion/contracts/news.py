"""
Data contracts for ISteamNews/GetNewsForApp responses.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class NewsItemPayload(BaseModel):
    """One news item. gid is unique across all apps."""

    gid: str = Field(..., min_length=1, description="Globally unique news item id")
    title: str = Field(default="", description="Headline")
    url: str | None = None
    is_external_url: bool = False
    author: str | None = None
    contents: str | None = None
    feedlabel: str | None = None
    date: int | None = Field(default=None, description="Publication time as Unix timestamp")
    feedname: str | None = None
    feed_type: int = 0
    tags: list[str] | None = None

    @field_validator("gid", mode="before")
    @classmethod
    def coerce_gid(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def row(self) -> dict[str, Any]:
        """Column values for the news table, without the gid key."""
        return self.model_dump(exclude={"gid"})
