"""
Domain schemas (pydantic models) shared by services, API and CLI.
"""
from okrdash.schemas.jira import EpicData, JiraIssue
from okrdash.schemas.settings import (
    AISettings,
    DashboardSettings,
    EpicAnalysisSettings,
    JiraSettings,
    SettingsUpdate,
    UISettings,
    UserSettings,
)

__all__ = [
    "AISettings",
    "DashboardSettings",
    "EpicAnalysisSettings",
    "EpicData",
    "JiraIssue",
    "JiraSettings",
    "SettingsUpdate",
    "UISettings",
    "UserSettings",
]
