"""
User settings schemas.

Stored documents use camelCase keys (``refreshInterval``, ``epicAnalysis``);
Python code uses the snake_case attribute names. Both spellings are accepted
on input.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Theme = Literal["light", "dark", "system"]

SECTIONS = ("jira", "ui", "ai", "epic_analysis", "dashboard")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, exclude_unset: bool = False) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=exclude_unset)


class JiraSettings(CamelModel):
    """Jira connection credentials."""
    url: str = ""
    email: str = ""
    token: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.url and self.email and self.token)


class UISettings(CamelModel):
    custom_logo_url: Optional[str] = None
    refresh_interval: int = Field(default=30000, ge=0, description="Auto-refresh interval in ms")
    theme: Theme = "system"


class AISettings(CamelModel):
    gemini_api_key: Optional[str] = None


class EpicAnalysisSettings(CamelModel):
    default_epic_key: Optional[str] = None
    extra_epics: list[str] = Field(default_factory=list)


class DashboardSettings(CamelModel):
    project_key: Optional[str] = None
    selected_version: Optional[str] = None
    selected_period: Optional[str] = None


SECTION_MODELS: Dict[str, type[CamelModel]] = {
    "jira": JiraSettings,
    "ui": UISettings,
    "ai": AISettings,
    "epic_analysis": EpicAnalysisSettings,
    "dashboard": DashboardSettings,
}


class UserSettings(CamelModel):
    """The per-user settings record stored at ``user_settings/{userId}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    user_id: str
    jira: JiraSettings = Field(default_factory=JiraSettings)
    ui: UISettings = Field(default_factory=UISettings)
    ai: AISettings = Field(default_factory=AISettings)
    epic_analysis: EpicAnalysisSettings = Field(default_factory=EpicAnalysisSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SettingsUpdate(CamelModel):
    """
    Partial settings write.

    Only the fields explicitly set are written. Within a section, fields not
    given keep their stored values.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    jira: Optional[JiraSettings] = None
    ui: Optional[UISettings] = None
    ai: Optional[AISettings] = None
    epic_analysis: Optional[EpicAnalysisSettings] = None
    dashboard: Optional[DashboardSettings] = None
    created_at: Optional[datetime] = None
