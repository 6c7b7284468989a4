"""
Settings Service

Single source of truth for per-user configuration, stored at
``user_settings/{userId}``.

    load_settings    read the record; migrate it from legacy local storage on
                     first use; never raises (failures load as None)
    save_settings    merge-write (nested sections merge field by field);
                     raises on failure
    update_*         read-modify-write of one section, guarded by the
                     record's version so a concurrent write is never clobbered

Lifecycle per user: ABSENT -> (migration) -> PRESENT. A present record is only
ever updated in place.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from okrdash.auth.session import UserSession
from okrdash.errors import (
    DocumentConflictError,
    DocumentStoreError,
    OkrDashError,
    SettingsConflictError,
)
from okrdash.infra.db.document_store import DocumentStore, document_path
from okrdash.schemas.settings import (
    SECTION_MODELS,
    AISettings,
    DashboardSettings,
    EpicAnalysisSettings,
    JiraSettings,
    SettingsUpdate,
    UISettings,
    UserSettings,
)
from okrdash.services import legacy_store as keys
from okrdash.services.legacy_store import EMPTY_LEGACY_STORE, LegacyLocalStore

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_KEY = "ION"
DEFAULT_REFRESH_INTERVAL_MS = 30000
DEFAULT_SELECTION = "ALL"

# Caller-supplied values for these are always replaced
_STAMPED_FIELDS = ("userId", "user_id", "updatedAt", "updated_at")

SettingsPayload = Union[UserSettings, SettingsUpdate, Mapping[str, Any]]
SectionPayload = Union[BaseModel, Mapping[str, Any]]


def parse_refresh_interval(value: Optional[str], default: int = DEFAULT_REFRESH_INTERVAL_MS) -> int:
    """Leading integer of ``value`` in ms; ``default`` if missing, unparsable or negative."""
    if not value:
        return default
    match = re.match(r"\s*([+-]?\d+)", value)
    if not match:
        return default
    interval = int(match.group(1))
    return interval if interval >= 0 else default


def split_epic_keys(value: Optional[str]) -> list[str]:
    """Split a comma-separated epic list, dropping blank entries."""
    if not value:
        return []
    return [key.strip() for key in value.split(",") if key.strip()]


class SettingsService:
    """Loads, migrates and saves UserSettings records."""

    COLLECTION = "user_settings"

    def __init__(
        self,
        store: DocumentStore,
        default_project_key: str = DEFAULT_PROJECT_KEY,
        default_refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
    ):
        self._store = store
        self._default_project_key = default_project_key
        self._default_refresh_interval_ms = default_refresh_interval_ms
        self._last_stamp: Optional[datetime] = None

    def _path(self, user_id: str) -> str:
        return document_path(self.COLLECTION, user_id)

    def _next_timestamp(self) -> datetime:
        """Current UTC time, nudged so every stamp is later than the previous one."""
        now = datetime.now(timezone.utc)
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    async def load_settings(
        self,
        session: UserSession,
        legacy: Optional[LegacyLocalStore] = None,
    ) -> Optional[UserSettings]:
        """
        Load the session user's settings.

        If no record exists, one is migrated from ``legacy`` (the browser's
        localStorage snapshot; defaults when omitted) and persisted.

        Returns:
            The settings, or None for anonymous sessions and on any failure
        """
        if not session.is_authenticated:
            return None

        try:
            settings, _ = await self._read(session.require_user(), legacy or EMPTY_LEGACY_STORE)
        except (OkrDashError, ValueError) as e:
            logger.error(f"[Settings] Error loading settings: {e}")
            return None

        return settings

    async def save_settings(
        self,
        session: UserSession,
        partial: SettingsPayload,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Merge-write settings for the session user.

        Fields present in ``partial`` replace the stored ones, section by
        section and field by field; absent fields are untouched. ``userId`` and ``updatedAt`` are always stamped.

        Args:
            session: Must be authenticated
            partial: UserSettings, SettingsUpdate or a mapping of top-level fields
            expected_version: Only write if the record is at this version

        Returns:
            The record's new version

        Raises:
            NotAuthenticatedError: anonymous session
            DocumentStoreError: the write failed (DocumentConflictError when
                ``expected_version`` did not match)
        """
        user_id = session.require_user()
        payload = self._to_partial_document(partial)
        payload["userId"] = user_id
        payload["updatedAt"] = self._next_timestamp().isoformat()

        try:
            version = await self._store.set(
                self._path(user_id), payload, merge=True, expected_version=expected_version
            )
        except DocumentStoreError as e:
            logger.error(f"[Settings] Error saving settings for {user_id}: {e}")
            raise

        logger.info(f"[Settings] Saved settings for {user_id} (version {version})")
        return version

    async def _read(self, user_id: str, legacy: LegacyLocalStore) -> Tuple[UserSettings, int]:
        snapshot = await self._store.get(self._path(user_id))
        if snapshot is not None:
            logger.info(f"[Settings] Loaded settings for {user_id}")
            return UserSettings.model_validate(snapshot.data), snapshot.version

        logger.info(f"[Settings] No stored settings for {user_id}, attempting migration")
        return await self._migrate_from_local_storage(user_id, legacy)

    async def _migrate_from_local_storage(
        self, user_id: str, legacy: LegacyLocalStore
    ) -> Tuple[UserSettings, int]:
        """One-time copy of legacy localStorage values into a new settings record."""
        now = self._next_timestamp()
        settings = UserSettings(
            user_id=user_id,
            jira=JiraSettings(
                url=legacy.text(keys.JIRA_URL) or "",
                email=legacy.text(keys.JIRA_EMAIL) or "",
                token=legacy.text(keys.JIRA_TOKEN) or "",
            ),
            ui=UISettings(
                custom_logo_url=legacy.text(keys.CUSTOM_LOGO_URL),
                refresh_interval=parse_refresh_interval(
                    legacy.text(keys.REFRESH_INTERVAL), self._default_refresh_interval_ms
                ),
                theme="system",
            ),
            ai=AISettings(gemini_api_key=legacy.text(keys.GEMINI_API_KEY)),
            epic_analysis=EpicAnalysisSettings(
                default_epic_key=legacy.text(keys.DEFAULT_EPIC_KEY),
                extra_epics=split_epic_keys(legacy.text(keys.EXTRA_EPICS)),
            ),
            dashboard=DashboardSettings(
                project_key=legacy.text(keys.JIRA_PROJECT_KEY) or self._default_project_key,
                selected_version=DEFAULT_SELECTION,
                selected_period=DEFAULT_SELECTION,
            ),
            created_at=now,
            updated_at=now,
        )

        try:
            version = await self.save_settings(
                UserSession(user_id=user_id), settings, expected_version=0
            )
        except DocumentConflictError:
            # Another caller migrated first; theirs is the record
            logger.info(f"[Settings] Settings for {user_id} were created concurrently, reloading")
            snapshot = await self._store.get(self._path(user_id))
            if snapshot is None:
                raise
            return UserSettings.model_validate(snapshot.data), snapshot.version

        logger.info(f"[Settings] Migrated settings for {user_id} from local storage")
        # Re-read so the caller sees exactly what was stored
        snapshot = await self._store.get(self._path(user_id))
        if snapshot is None:
            return settings, version
        return UserSettings.model_validate(snapshot.data), snapshot.version

    def _to_partial_document(self, partial: SettingsPayload) -> dict[str, Any]:
        if isinstance(partial, UserSettings):
            return partial.to_document()
        if isinstance(partial, SettingsUpdate):
            return partial.to_document(exclude_unset=True)
        cleaned = {k: v for k, v in partial.items() if k not in _STAMPED_FIELDS}
        return SettingsUpdate.model_validate(cleaned).to_document(exclude_unset=True)

    # ------------------------------------------------------------------
    # Section updates
    # ------------------------------------------------------------------

    async def update_section(
        self, session: UserSession, section: str, partial: SectionPayload
    ) -> BaseModel:
        """
        Shallow-merge ``partial`` into one top-level section and save it.

        The write is conditional on the version that was read, so if another
        write lands in between, nothing is written and SettingsConflictError is
        raised. There is no automatic retry.

        Returns:
            The merged section as stored
        """
        if section not in SECTION_MODELS:
            raise ValueError(f"Unknown settings section: {section}")
        user_id = session.require_user()
        model_cls = SECTION_MODELS[section]

        settings, version = await self._read(user_id, EMPTY_LEGACY_STORE)
        current = getattr(settings, section)

        if isinstance(partial, BaseModel):
            changes = partial.model_dump(mode="json", by_alias=True, exclude_unset=True)
        else:
            changes = model_cls.model_validate(partial).to_document(exclude_unset=True)
        merged = model_cls.model_validate({**current.to_document(), **changes})

        try:
            await self.save_settings(
                session, SettingsUpdate(**{section: merged}), expected_version=version
            )
        except DocumentConflictError as e:
            logger.warning(f"[Settings] Concurrent update of '{section}' for {user_id}: {e}")
            raise SettingsConflictError(user_id, section) from e
        return merged

    async def update_jira_settings(self, session: UserSession, jira: SectionPayload) -> BaseModel:
        return await self.update_section(session, "jira", jira)

    async def update_ui_settings(self, session: UserSession, ui: SectionPayload) -> BaseModel:
        return await self.update_section(session, "ui", ui)

    async def update_ai_settings(self, session: UserSession, ai: SectionPayload) -> BaseModel:
        return await self.update_section(session, "ai", ai)

    async def update_epic_analysis_settings(
        self, session: UserSession, epic_analysis: SectionPayload
    ) -> BaseModel:
        return await self.update_section(session, "epic_analysis", epic_analysis)

    async def update_dashboard_settings(
        self, session: UserSession, dashboard: SectionPayload
    ) -> BaseModel:
        return await self.update_section(session, "dashboard", dashboard)
