"""
API Schemas package.
"""
from .settings import LegacyLoadRequest, SectionName
from .epics import EpicCacheResponse, ExtraEpicsRequest, ExtraEpicsResponse

__all__ = [
    "EpicCacheResponse",
    "ExtraEpicsRequest",
    "ExtraEpicsResponse",
    "LegacyLoadRequest",
    "SectionName",
]
