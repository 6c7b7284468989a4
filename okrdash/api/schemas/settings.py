"""
API Schemas for user settings.
"""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class SectionName(str, Enum):
    """Settings sections addressable by PATCH /settings/{section}."""
    JIRA = "jira"
    UI = "ui"
    AI = "ai"
    EPIC_ANALYSIS = "epic-analysis"
    DASHBOARD = "dashboard"

    @property
    def attribute(self) -> str:
        return self.value.replace("-", "_")


class LegacyLoadRequest(BaseModel):
    """Browser localStorage snapshot used if the user has no stored settings yet."""
    local_storage: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="localStorage key/value pairs (jira_url, refresh_interval, ...)",
    )
