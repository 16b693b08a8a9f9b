"""
Data contracts for the Steam app list.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class AppListItem(BaseModel):
    """One entry of ISteamApps/GetAppList."""

    appid: int = Field(..., gt=0, description="Steam application ID")
    name: str | None = Field(default=None, description="App name, may be empty")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v).strip()

    @property
    def has_name(self) -> bool:
        return bool(self.name)
