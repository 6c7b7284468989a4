"""
System Config Service

Admin-managed Jira connection stored at ``system_config/jira``. Jira calls made for a
user whose own credentials are incomplete fall back to it.
"""
import logging
from typing import Optional

from pydantic import Field

from okrdash.errors import OkrDashError
from okrdash.infra.db.document_store import DocumentStore, document_path
from okrdash.schemas.settings import JiraSettings, UserSettings

logger = logging.getLogger(__name__)


class SystemJiraConfig(JiraSettings):
    """Jira credentials shared by all users, plus an optional default epic."""
    default_epic_key: Optional[str] = Field(None, description="Epic shown when a user has none")


class SystemConfigService:
    COLLECTION = "system_config"
    JIRA_DOC = "jira"

    def __init__(self, store: DocumentStore):
        self._store = store

    @property
    def jira_path(self) -> str:
        return document_path(self.COLLECTION, self.JIRA_DOC)

    async def get_jira_config(self) -> Optional[SystemJiraConfig]:
        """Stored system Jira config, or None if absent.

        Raises:
            DocumentStoreError: the read failed
        """
        snapshot = await self._store.get(self.jira_path)
        if snapshot is None:
            return None
        return SystemJiraConfig.model_validate(snapshot.data)

    async def save_jira_config(self, config: SystemJiraConfig) -> int:
        """Replace the system Jira config. Store failures propagate."""
        version = await self._store.set(self.jira_path, config.to_document())
        logger.info(f"[SystemConfig] Saved system Jira config (version {version})")
        return version

    async def apply_jira_fallback(self, settings: UserSettings) -> UserSettings:
        """
        Fill incomplete user Jira credentials from the system config.

        System values win where set, the user's values are kept otherwise. The
        system default epic is used only when the user has none. The result is
        a copy; nothing is persisted. Failures leave ``settings`` unchanged.
        """
        if settings.jira.is_complete:
            return settings

        try:
            system = await self.get_jira_config()
        except (OkrDashError, ValueError) as e:
            logger.error(f"[SystemConfig] Failed to load system Jira config: {e}")
            return settings

        if system is None:
            logger.warning("[SystemConfig] System Jira config not found. Admin needs to configure it.")
            return settings

        logger.info(f"[SystemConfig] Using system Jira config for user {settings.user_id}")
        jira = JiraSettings(
            url=system.url or settings.jira.url,
            email=system.email or settings.jira.email,
            token=system.token or settings.jira.token,
        )
        epic_analysis = settings.epic_analysis
        if system.default_epic_key and not epic_analysis.default_epic_key:
            epic_analysis = epic_analysis.model_copy(update={"default_epic_key": system.default_epic_key})

        return settings.model_copy(update={"jira": jira, "epic_analysis": epic_analysis})
