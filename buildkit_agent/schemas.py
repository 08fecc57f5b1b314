"""Data contracts for the BuildKit Control API as seen by the agent.

Field aliases are the protobuf field names of ``moby.buildkit.v1.Control``
messages, so a decoded response validates as-is, while the Python side keeps
snake_case attribute names. Values are not range-checked here; the remote
daemon is trusted for everything but shape.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ControlModel(BaseModel):
    """Base for remote payloads: accept aliases or names, ignore unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class BuildkitVersion(ControlModel):
    package: str = ""
    version: str = ""
    revision: str = ""


class InfoResponse(ControlModel):
    buildkit_version: BuildkitVersion | None = Field(default=None, alias="buildkitVersion")


class WorkerRecord(ControlModel):
    id: str = Field(default="", alias="ID")


class ListWorkersResponse(ControlModel):
    record: list[WorkerRecord] = Field(default_factory=list)


class UsageRecord(ControlModel):
    """One cache record from DiskUsage. ``size`` is int64 and may arrive as a string."""

    id: str = Field(default="", alias="ID")
    size: int = Field(default=0, alias="Size")
    record_type: str = Field(default="", alias="RecordType")
    in_use: bool = Field(default=False, alias="InUse")
    shared: bool = Field(default=False, alias="Shared")


class DiskUsageResponse(ControlModel):
    record: list[UsageRecord] = Field(default_factory=list)


class BuildError(ControlModel):
    code: int = 0
    message: str = ""


class BuildHistoryRecord(ControlModel):
    """A completed build. Identified solely by ``ref``; an empty ref is still a ref."""

    ref: str = Field(default="", alias="Ref")
    error: BuildError | None = None
    num_cached_steps: int = Field(default=0, alias="numCachedSteps")
    num_total_steps: int = Field(default=0, alias="numTotalSteps")

    @property
    def failed(self) -> bool:
        return self.error is not None and self.error.code != 0


class BuildHistoryEventType(str, Enum):
    STARTED = "STARTED"
    COMPLETE = "COMPLETE"
    DELETED = "DELETED"


class BuildHistoryEvent(ControlModel):
    type: BuildHistoryEventType = BuildHistoryEventType.STARTED
    record: BuildHistoryRecord | None = None
