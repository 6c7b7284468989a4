"""
Epic Analysis Service

Read-through layer over the epic cache: serve the user's cached analysis when
there is one, otherwise fetch from Jira and cache the result. Jira credentials
are the user's own, completed from the system Jira config when one is set.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from okrdash.auth.session import UserSession
from okrdash.errors import JiraError, JiraNotConfiguredError
from okrdash.schemas.jira import EpicData, EpicSummary, JiraIssue
from okrdash.schemas.settings import JiraSettings, UserSettings
from okrdash.services.epic_cache import EpicCacheService, normalize_epic_key
from okrdash.services.jira_client import JiraClient
from okrdash.services.settings_service import SettingsService
from okrdash.services.system_config import SystemConfigService

logger = logging.getLogger(__name__)

ClientFactory = Callable[[JiraSettings], JiraClient]


def summarize_epic(epic: JiraIssue, children: Sequence[JiraIssue]) -> EpicSummary:
    """
    Collapse an epic and its children into one summary row.

    Jira's own aggregate time on the epic is unreliable, so when children are
    present the epic's time spent is recomputed from them (each child's
    aggregate if known, else its own time spent).
    """
    total_children = len(children)
    done_children = sum(1 for c in children if c.is_done)

    if children:
        time_spent = sum(
            c.fields.aggregatetimespent
            if c.fields.aggregatetimespent is not None
            else (c.fields.timespent or 0)
            for c in children
        )
        progress = round(done_children / total_children * 100)
    else:
        time_spent = epic.fields.aggregatetimespent or epic.fields.timespent or 0
        progress = 100 if epic.is_done else 0

    status = epic.fields.status
    return EpicSummary(
        key=epic.key or "",
        summary=epic.fields.summary,
        status=status.name if status else None,
        status_category=epic.status_category,
        progress=progress,
        total_children=total_children,
        done_children=done_children,
        time_spent=time_spent,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )


class EpicAnalysisService:
    def __init__(
        self,
        settings_service: SettingsService,
        epic_cache: EpicCacheService,
        system_config: Optional[SystemConfigService] = None,
        client_factory: ClientFactory = JiraClient,
        throttle_seconds: float = 1.0,
    ):
        self._settings = settings_service
        self._cache = epic_cache
        self._system_config = system_config
        self._client_factory = client_factory
        self._throttle_seconds = throttle_seconds

    async def _effective_settings(self, session: UserSession) -> UserSettings:
        """User settings with the system Jira fallback applied, for this call only."""
        settings = await self._settings.load_settings(session)
        if settings is not None and self._system_config is not None:
            settings = await self._system_config.apply_jira_fallback(settings)
        if settings is None or not settings.jira.is_complete:
            raise JiraNotConfiguredError("Jira not configured. Admin must configure Jira in Settings.")
        return settings

    async def _credentials(self, session: UserSession) -> JiraSettings:
        return (await self._effective_settings(session)).jira

    async def get_epic_details(
        self, session: UserSession, epic_key: str, force_refresh: bool = False
    ) -> EpicData:
        """
        Epic plus children, from the user's cache unless missing or forced.

        Raises:
            NotAuthenticatedError: anonymous session
            ValueError: blank epic key
            JiraError: fetch failed (only when the cache could not answer)
        """
        session.require_user()
        key = normalize_epic_key(epic_key)
        if key is None:
            raise ValueError("epicKey is required")

        if not force_refresh:
            cached = await self._cache.load_epic_data(session, key)
            if cached is not None:
                return cached

        credentials = await self._credentials(session)
        logger.info(f"[EpicAnalysis] Fetching epic {key} from Jira (force_refresh={force_refresh})")
        async with self._client_factory(credentials) as client:
            data = await client.fetch_epic_data(key)

        await self._cache.save_epic_data(session, key, data)
        return data

    async def get_extra_epics(
        self, session: UserSession, epic_keys: Sequence[str], force_refresh: bool = False
    ) -> List[EpicSummary]:
        """
        Summaries for a list of epics, cached as the user's extra-epics summary.

        Epics that fail to load are skipped; if every one fails, the first
        error is raised.
        """
        session.require_user()
        keys: List[str] = []
        for k in epic_keys:
            key = normalize_epic_key(k) if isinstance(k, str) else None
            if key and key not in keys:
                keys.append(key)
        if not keys:
            logger.warning("[EpicAnalysis] No valid epic keys to fetch")
            return []

        if not force_refresh:
            cached = await self._cache.load_extra_epics_data(session)
            if cached is not None:
                by_key = {s.key.upper(): s for s in cached}
                if all(k in by_key for k in keys):
                    return [by_key[k] for k in keys]

        credentials = await self._credentials(session)
        summaries: List[EpicSummary] = []
        errors: List[JiraError] = []
        async with self._client_factory(credentials) as client:
            for i, key in enumerate(keys):
                if i and self._throttle_seconds:
                    await asyncio.sleep(self._throttle_seconds)
                try:
                    data = await client.fetch_epic_data(key)
                except JiraError as e:
                    logger.warning(f"[EpicAnalysis] Failed to load epic {key}: {e}")
                    errors.append(e)
                    continue
                summaries.append(summarize_epic(data.epic, data.children))

        if errors and not summaries:
            raise errors[0]

        logger.info(f"[EpicAnalysis] Loaded {len(summaries)}/{len(keys)} extra epics")
        await self._cache.save_extra_epics_data(session, summaries)
        return summaries

    async def get_strategic_objectives(
        self, session: UserSession, project_key: Optional[str] = None
    ) -> List[JiraIssue]:
        """Open epics of the user's dashboard project (or ``project_key``)."""
        session.require_user()
        settings = await self._effective_settings(session)
        project = project_key or settings.dashboard.project_key or "ION"
        async with self._client_factory(settings.jira) as client:
            return await client.fetch_strategic_objectives(project)
