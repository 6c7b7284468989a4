"""
Jira issue snapshots.

Typed views over the Jira REST issue schema. Every model accepts and keeps
fields it does not know about, so cached snapshots round-trip unchanged.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class JiraModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class StatusCategory(JiraModel):
    key: Optional[str] = None  # new | indeterminate | done
    name: Optional[str] = None
    color_name: Optional[str] = Field(None, alias="colorName")


class IssueStatus(JiraModel):
    name: Optional[str] = None
    status_category: Optional[StatusCategory] = Field(None, alias="statusCategory")


class IssueType(JiraModel):
    name: Optional[str] = None
    icon_url: Optional[str] = Field(None, alias="iconUrl")
    subtask: bool = False


class Assignee(JiraModel):
    display_name: Optional[str] = Field(None, alias="displayName")
    avatar_urls: Optional[Dict[str, str]] = Field(None, alias="avatarUrls")


class FixVersion(JiraModel):
    name: Optional[str] = None
    released: Optional[bool] = None
    release_date: Optional[str] = Field(None, alias="releaseDate")


class NamedRef(JiraModel):
    name: Optional[str] = None


class IssueParent(JiraModel):
    key: Optional[str] = None


class IssueFields(JiraModel):
    summary: Optional[str] = None
    status: Optional[IssueStatus] = None
    issuetype: Optional[IssueType] = None
    assignee: Optional[Assignee] = None

    # Time tracking, seconds
    timeoriginalestimate: Optional[int] = None
    timeestimate: Optional[int] = None
    timespent: Optional[int] = None
    aggregatetimespent: Optional[int] = None
    aggregatetimeoriginalestimate: Optional[int] = None
    aggregatetimeestimate: Optional[int] = None

    components: Optional[list[NamedRef]] = None
    labels: Optional[list[str]] = None
    fix_versions: Optional[list[FixVersion]] = Field(None, alias="fixVersions")
    subtasks: Optional[list["JiraIssue"]] = None

    created: Optional[str] = None
    updated: Optional[str] = None
    resolutiondate: Optional[str] = None
    duedate: Optional[str] = None

    parent: Optional[IssueParent] = None
    customfield_10014: Optional[str] = None  # Epic Link
    progress: Optional[int] = None


class JiraIssue(JiraModel):
    id: Optional[str] = None
    key: Optional[str] = None
    fields: IssueFields = Field(default_factory=IssueFields)
    progress: Optional[int] = None  # 0-100
    subtasks: Optional[list["JiraIssue"]] = None

    @property
    def status_category(self) -> Optional[str]:
        status = self.fields.status
        if status is None or status.status_category is None:
            return None
        return status.status_category.key

    @property
    def is_done(self) -> bool:
        return self.status_category == "done"


IssueFields.model_rebuild()


class EpicData(JiraModel):
    """An epic plus its child issues, as fetched from Jira."""
    epic: JiraIssue
    children: list[JiraIssue] = Field(default_factory=list)


class EpicCacheEntry(EpicData):
    """Cached epic analysis stored at ``user_settings/{uid}/epics/{KEY}``."""
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")
    saved_by: Optional[str] = Field(None, alias="savedBy")


class EpicSummary(JiraModel):
    """Simplified epic row used by the extra-epics view."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    key: str
    summary: Optional[str] = None
    status: Optional[str] = None
    status_category: Optional[str] = None
    progress: int = 0
    total_children: int = 0
    done_children: int = 0
    time_spent: int = 0  # seconds
    last_updated: Optional[str] = None
