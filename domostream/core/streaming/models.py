"""Pydantic models for Domo stream API responses."""

from pydantic import BaseModel, ConfigDict, Field


class StreamExecution(BaseModel):
    """A stream execution, the upload session data parts are added to.

    Attributes:
        id: Execution id assigned by Domo.
        started_at: When the execution was started.
        ended_at: When the execution was committed or aborted.
        current_state: Execution state reported by Domo, e.g. ``ACTIVE``.
        created_at: Creation timestamp.
        modified_at: Last modification timestamp.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    started_at: str | None = Field(default=None, alias="startedAt")
    ended_at: str | None = Field(default=None, alias="endedAt")
    current_state: str | None = Field(default=None, alias="currentState")
    created_at: str | None = Field(default=None, alias="createdAt")
    modified_at: str | None = Field(default=None, alias="modifiedAt")
