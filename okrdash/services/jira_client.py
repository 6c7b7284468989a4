"""
Jira Client

Minimal async client for the Jira Cloud REST API (v3) covering what the
dashboard reads: one epic with its children and their sub-tasks, and a
project's open epics.
"""
import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional

import httpx

from okrdash.errors import JiraError, JiraNotConfiguredError, JiraNotFoundError
from okrdash.schemas.jira import EpicData, JiraIssue
from okrdash.schemas.settings import JiraSettings

logger = logging.getLogger(__name__)

EPIC_FIELDS = "summary,status,issuetype,assignee,created,updated,timespent,timeoriginalestimate"
CHILD_FIELDS = (
    "summary,status,issuetype,assignee,timeoriginalestimate,timeestimate,timespent,"
    "components,created,updated,resolutiondate,duedate,parent,customfield_10014,attachment"
)
SUBTASK_FIELDS = (
    "summary,status,issuetype,assignee,created,updated,parent,resolutiondate,duedate,"
    "timespent,timeoriginalestimate,timeestimate,fixVersions,components"
)
OBJECTIVE_FIELDS = "summary,status,description,created,updated,fixVersions"

SUBTASK_TYPES = '(Sub-task, Subtask, Subtarefa, "Sub-tarefa")'


def normalize_jira_url(url: str) -> str:
    """Add https:// when no scheme is given and drop the trailing slash."""
    url = url.strip()
    if not url.startswith("http"):
        url = f"https://{url}"
    return url.rstrip("/")


def sanitize_project_key(project_key: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "", project_key)


def children_jql(epic_key: str) -> str:
    return (
        f'(parent = "{epic_key}" OR "Epic Link" = "{epic_key}") '
        f"AND issuetype not in {SUBTASK_TYPES}"
    )


def subtask_progress(subtasks: List[Dict[str, Any]]) -> int:
    """Percentage of sub-tasks in the 'done' status category (0 when none)."""
    if not subtasks:
        return 0
    done = 0
    for s in subtasks:
        status = (s.get("fields") or {}).get("status") or {}
        if (status.get("statusCategory") or {}).get("key") == "done":
            done += 1
    return round(done / len(subtasks) * 100)


class JiraClient:
    """Async Jira REST client using basic auth (email + API token)."""

    def __init__(
        self,
        credentials: JiraSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not credentials.is_complete:
            raise JiraNotConfiguredError(
                "Incomplete Jira configuration. URL, email and token are required."
            )
        self.base_url = normalize_jira_url(credentials.url)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(credentials.email.strip(), credentials.token.strip()),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = await self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise JiraError(f"Jira request failed: {e}") from e
        if resp.status_code == 404:
            raise JiraNotFoundError(f"Not found in Jira: {path}", status_code=404)
        if resp.is_error:
            raise JiraError(f"Jira API error: {resp.status_code}", status_code=resp.status_code)
        return resp.json()

    async def search(self, jql: str, fields: str, max_results: int) -> List[Dict[str, Any]]:
        logger.info(f"[Jira] Search JQL: {jql}")
        data = await self._get(
            "/rest/api/3/search",
            params={"jql": jql, "fields": fields, "maxResults": max_results},
        )
        return data.get("issues") or []

    async def fetch_epic_data(self, epic_key: str) -> EpicData:
        """
        Fetch an epic, its child issues and each child's sub-tasks.

        Each child carries its sub-tasks under ``fields.subtasks`` and a
        ``fields.progress`` percentage of done sub-tasks.

        Raises:
            JiraNotFoundError: the epic does not exist
            JiraError: any other API failure
        """
        try:
            epic = await self._get(f"/rest/api/3/issue/{epic_key}", params={"fields": EPIC_FIELDS})
        except JiraNotFoundError as e:
            raise JiraNotFoundError(f"Epic {epic_key} not found in Jira", status_code=404) from e

        children = await self.search(children_jql(epic_key), CHILD_FIELDS, 1000)

        subtasks_by_parent: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        if children:
            child_keys = '","'.join(c["key"] for c in children)
            logger.info(f"[Jira] Fetching subtasks for {len(children)} children of {epic_key}")
            try:
                subtasks = await self.search(f'parent in ("{child_keys}")', SUBTASK_FIELDS, 5000)
            except JiraError as e:
                # Children are still usable without their sub-tasks
                logger.warning(f"[Jira] Subtask fetch failed for {epic_key}: {e}")
                subtasks = []
            for sub in subtasks:
                parent_key = ((sub.get("fields") or {}).get("parent") or {}).get("key")
                if parent_key:
                    subtasks_by_parent[parent_key].append(sub)

        result_children = []
        for child in children:
            subs = subtasks_by_parent.get(child["key"], [])
            result_children.append(
                {
                    "id": child.get("id"),
                    "key": child["key"],
                    "fields": {
                        **(child.get("fields") or {}),
                        "subtasks": [
                            {"id": s.get("id"), "key": s["key"], "fields": s.get("fields") or {}}
                            for s in subs
                        ],
                        "progress": subtask_progress(subs),
                    },
                }
            )

        return EpicData(
            epic=JiraIssue.model_validate(
                {"id": epic.get("id"), "key": epic["key"], "fields": epic.get("fields") or {}}
            ),
            children=[JiraIssue.model_validate(c) for c in result_children],
        )

    async def fetch_strategic_objectives(self, project_key: str) -> List[JiraIssue]:
        """Open epics of a project, newest first."""
        project = sanitize_project_key(project_key)
        jql = f"project = {project} AND issuetype = Epic AND status != Done ORDER BY created DESC"
        issues = await self.search(jql, OBJECTIVE_FIELDS, 100)
        return [JiraIssue.model_validate(issue) for issue in issues]
