"""Agent models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from kluster.models.common import KlusterModel


class AgentState(str, Enum):
    """Agent registration state."""

    ACTIVE = "active"
    ABSENT = "absent"


class Agent(KlusterModel):
    """Registered agent resource."""

    agent_id: str
    display_name: str = ""
    project: str = ""
    organization: str = ""
    facts: dict[str, Any] = Field(default_factory=dict)
    tags: dict[str, str] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_with: str = ""
    updated_by: str = ""
