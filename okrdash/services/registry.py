"""
Service registry.

Builds the service graph over one DocumentStore so the API and the CLI wire
things the same way.
"""
from dataclasses import dataclass

from okrdash.config import Settings
from okrdash.infra.db.document_store import DocumentStore
from okrdash.services.epic_analysis import EpicAnalysisService
from okrdash.services.epic_cache import EpicCacheService
from okrdash.services.global_config import GlobalConfigService
from okrdash.services.jira_client import JiraClient
from okrdash.services.settings_service import SettingsService
from okrdash.services.system_config import SystemConfigService


@dataclass
class Services:
    store: DocumentStore
    settings: SettingsService
    epic_cache: EpicCacheService
    system_config: SystemConfigService
    global_config: GlobalConfigService
    epic_analysis: EpicAnalysisService


def build_services(store: DocumentStore, config: Settings) -> Services:
    system_config = SystemConfigService(store)
    settings_service = SettingsService(
        store,
        default_project_key=config.default_project_key,
        default_refresh_interval_ms=config.default_refresh_interval_ms,
    )
    epic_cache = EpicCacheService(store)

    def client_factory(credentials) -> JiraClient:
        return JiraClient(credentials, timeout=config.jira_timeout_seconds)

    return Services(
        store=store,
        settings=settings_service,
        epic_cache=epic_cache,
        system_config=system_config,
        global_config=GlobalConfigService(store),
        epic_analysis=EpicAnalysisService(
            settings_service,
            epic_cache,
            system_config=system_config if config.system_jira_fallback else None,
            client_factory=client_factory,
            throttle_seconds=config.jira_throttle_seconds,
        ),
    )
