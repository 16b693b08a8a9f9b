"""
Job payloads and lifecycle states.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobKind(str, Enum):
    """Kinds of per-app fetch jobs."""

    DETAILS = "details"
    NEWS = "news"
    WORKSHOP = "workshop"


class JobState(str, Enum):
    """
    Lifecycle of one job.

    PENDING -> IN_FLIGHT -> SUCCEEDED
    PENDING -> IN_FLIGHT -> RETRY_PENDING -> IN_FLIGHT -> ...
    PENDING -> IN_FLIGHT -> DEAD (attempts exhausted)
    """

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    RETRY_PENDING = "retry_pending"
    DEAD = "dead"


class JobPayload(BaseModel):
    """What is pushed to the queue for one job."""

    model_config = ConfigDict(frozen=True)

    job_kind: JobKind
    app_id: int = Field(..., gt=0, description="Steam application ID")
    cursor: str | None = Field(default=None, description="Workshop pagination cursor")
    attempts: int = Field(default=0, ge=0, description="Failed attempts so far")
    lock_token: str | None = Field(default=None, description="Owner token of the uniqueness lock")

    @property
    def unique_id(self) -> str:
        """Uniqueness key, scoped per job kind."""
        return f"{self.job_kind.value}:{self.app_id}"
