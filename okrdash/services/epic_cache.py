"""
Epic Cache Service

Per-user cache of expensive Jira-derived epic analyses:

    user_settings/{uid}/epics/{EPICKEY}              -> EpicCacheEntry
    user_settings/{uid}/epics_summary/extra_epics    -> extra epics summary

This is a performance cache, not a system of record. Every operation is
best-effort: anonymous sessions, empty keys and store failures turn saves into
no-ops and loads into misses, and nothing is ever raised to the caller.
Entries never expire; a save fully overwrites the previous entry for its key.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from okrdash.auth.session import UserSession
from okrdash.errors import OkrDashError
from okrdash.infra.db.document_store import DocumentStore, document_path
from okrdash.schemas.jira import EpicCacheEntry, EpicData, EpicSummary

logger = logging.getLogger(__name__)

EpicPayload = Union[EpicData, Mapping[str, Any]]
SummaryPayload = Union[EpicSummary, Mapping[str, Any]]


def normalize_epic_key(key: Optional[str]) -> Optional[str]:
    """Uppercased, stripped epic key; None when blank."""
    if not key or not key.strip():
        return None
    return key.strip().upper()


class EpicCacheService:
    """Best-effort cache of epic snapshots and the extra-epics summary."""

    ROOT = "user_settings"
    EPICS = "epics"
    SUMMARY = "epics_summary"
    EXTRA_EPICS = "extra_epics"

    def __init__(self, store: DocumentStore):
        self._store = store

    def epic_path(self, user_id: str, epic_key: str) -> str:
        return document_path(self.ROOT, user_id, self.EPICS, epic_key)

    def summary_path(self, user_id: str) -> str:
        return document_path(self.ROOT, user_id, self.SUMMARY, self.EXTRA_EPICS)

    async def save_epic_data(self, session: UserSession, epic_key: str, data: EpicPayload) -> None:
        """Cache an epic and its children under the uppercased key."""
        if not session.is_authenticated:
            logger.warning("[EpicCache] Cannot save: user not authenticated")
            return
        key = normalize_epic_key(epic_key)
        if key is None:
            return

        try:
            epic_data = data if isinstance(data, EpicData) else EpicData.model_validate(data)
            document = {
                "epic": epic_data.epic.to_document(),
                "children": [child.to_document() for child in epic_data.children],
                "lastUpdated": datetime.now(timezone.utc).isoformat(),
                "savedBy": session.user_id,
            }
            await self._store.set(self.epic_path(session.user_id, key), document)
            logger.info(f"[EpicCache] Saved epic {key} ({len(epic_data.children)} children)")
        except ValidationError as e:
            logger.warning(f"[EpicCache] Dropped invalid epic snapshot for {key}: {e}")
        except (OkrDashError, ValueError) as e:
            logger.error(f"[EpicCache] Error saving epic {key}: {e}")

    async def load_epic_data(self, session: UserSession, epic_key: str) -> Optional[EpicCacheEntry]:
        """Cached entry for ``epic_key`` (any casing), or None on miss or failure."""
        if not session.is_authenticated:
            return None
        key = normalize_epic_key(epic_key)
        if key is None:
            return None

        try:
            snapshot = await self._store.get(self.epic_path(session.user_id, key))
            if snapshot is None:
                logger.info(f"[EpicCache] Cache MISS for epic {key}")
                return None
            entry = EpicCacheEntry.model_validate(snapshot.data)
        except (OkrDashError, ValueError) as e:
            logger.error(f"[EpicCache] Error loading epic {key}: {e}")
            return None

        logger.info(f"[EpicCache] Cache HIT for epic {key}")
        return entry

    async def save_extra_epics_data(
        self, session: UserSession, epics: Sequence[SummaryPayload]
    ) -> None:
        """Replace the extra-epics summary list."""
        if not session.is_authenticated:
            return

        try:
            summaries = [
                e if isinstance(e, EpicSummary) else EpicSummary.model_validate(e) for e in epics
            ]
            document = {
                "epics": [s.to_document() for s in summaries],
                "lastUpdated": datetime.now(timezone.utc).isoformat(),
            }
            await self._store.set(self.summary_path(session.user_id), document)
            logger.info(f"[EpicCache] Saved extra epics summary ({len(summaries)} epics)")
        except (OkrDashError, ValueError) as e:
            logger.error(f"[EpicCache] Error saving extra epics: {e}")

    async def load_extra_epics_data(self, session: UserSession) -> Optional[list[EpicSummary]]:
        """
        Cached extra-epics summary.

        Returns:
            [] when the record exists but holds no epics, None when there is no
            record, the session is anonymous, or the read failed
        """
        if not session.is_authenticated:
            return None

        try:
            snapshot = await self._store.get(self.summary_path(session.user_id))
            if snapshot is None:
                return None
            raw = snapshot.data.get("epics") or []
            epics = [EpicSummary.model_validate(item) for item in raw]
        except (OkrDashError, ValueError) as e:
            logger.error(f"[EpicCache] Error loading extra epics: {e}")
            return None

        logger.info(f"[EpicCache] Loaded extra epics summary ({len(epics)} epics)")
        return epics

    async def extra_epics_last_updated(self, session: UserSession) -> Optional[str]:
        """``lastUpdated`` of the extra-epics summary, if any."""
        if not session.is_authenticated:
            return None
        try:
            snapshot = await self._store.get(self.summary_path(session.user_id))
        except (OkrDashError, ValueError) as e:
            logger.error(f"[EpicCache] Error reading extra epics timestamp: {e}")
            return None
        return snapshot.data.get("lastUpdated") if snapshot else None
