"""Job models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from kluster.models.common import KlusterModel


class JobStatus(str, Enum):
    """Job status."""

    QUEUED = "queued"
    EXECUTING = "executing"
    FAILED = "failed"
    COMPLETE = "complete"


class JobUser(KlusterModel):
    """User that submitted a job."""

    id: str = ""
    name: str = ""
    domain_id: str = ""
    domain_name: str = ""
    roles: list[str] = Field(default_factory=list)


class Job(KlusterModel):
    """Background job resource."""

    request_id: str
    status: JobStatus | str
    version: int | None = None
    sender: str | None = None
    to: str | None = None
    timeout: int = 0
    agent: str = ""
    action: str = ""
    payload: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    project: str | None = None
    user: JobUser | None = None


class JobCreate(KlusterModel):
    """Request body for submitting a job."""

    to: str
    timeout: int = 3600
    agent: str
    action: str
    payload: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body."""
        return self.model_dump(mode="json")
