"""
Service layer.
"""
from okrdash.services.epic_cache import EpicCacheService
from okrdash.services.legacy_store import LegacyLocalStore
from okrdash.services.settings_service import SettingsService

__all__ = [
    "EpicCacheService",
    "LegacyLocalStore",
    "SettingsService",
]
