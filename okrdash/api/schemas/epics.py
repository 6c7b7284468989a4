"""
API Schemas for the epic cache.
"""
from typing import Optional

from pydantic import BaseModel, Field

from okrdash.schemas.jira import EpicSummary


class EpicCacheResponse(BaseModel):
    """Result of a cache lookup; ``entry`` is null on a miss."""
    key: str
    entry: Optional[dict] = None


class ExtraEpicsResponse(BaseModel):
    """Cached extra-epics summary; ``epics`` is null when nothing was ever saved."""
    epics: Optional[list[EpicSummary]] = None
    last_updated: Optional[str] = None


class ExtraEpicsRequest(BaseModel):
    keys: list[str] = Field(default_factory=list, description="Epic keys to summarize")
    force_refresh: bool = False
