"""
Global Config Service

App-wide UI configuration at ``config/ui`` (logo and auto-refresh interval),
with change subscription.
"""
import logging
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel

from okrdash.errors import OkrDashError
from okrdash.infra.db.document_store import DocumentStore, document_path

logger = logging.getLogger(__name__)


class GlobalConfig(BaseModel):
    logo_url: str = ""
    refresh_interval: int = 0


def _coerce_interval(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def global_config_from_document(data: Optional[Mapping[str, Any]]) -> GlobalConfig:
    if not data:
        return GlobalConfig()
    return GlobalConfig(
        logo_url=data.get("logoUrl") or "",
        refresh_interval=_coerce_interval(data.get("refreshInterval")),
    )


class GlobalConfigService:
    def __init__(self, store: DocumentStore):
        self._store = store
        self._path = document_path("config", "ui")

    async def get(self) -> GlobalConfig:
        """Current global config; defaults when absent or unreadable."""
        try:
            snapshot = await self._store.get(self._path)
        except OkrDashError as e:
            logger.error(f"[GlobalConfig] Error reading global config: {e}")
            return GlobalConfig()
        return global_config_from_document(snapshot.data if snapshot else None)

    async def save(self, config: GlobalConfig) -> None:
        await self._store.set(
            self._path,
            {"logoUrl": config.logo_url, "refreshInterval": config.refresh_interval},
        )

    def subscribe(self, callback: Callable[[GlobalConfig], Any]) -> Callable[[], None]:
        """Call ``callback`` with the new GlobalConfig on every change. Returns unsubscribe."""

        def on_change(_path: str, data: Optional[Mapping[str, Any]]) -> Any:
            return callback(global_config_from_document(data))

        return self._store.watch(self._path, on_change)
